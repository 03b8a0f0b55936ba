"""Helpers for NTP time, stream copying and RTP buffering.

Readers have ``read(size) -> bytes``; a read that raises ``EOFError`` or
returns no bytes ends the stream. Writers have ``write(data)`` returning the
number of bytes written (``None`` is taken as everything written).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Union

from rtpmedia.packet import RTPPacket

NTP_EPOCH_OFFSET = 2208988800
RTP_BUF_SIZE = 1500

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_log = logging.getLogger(__name__)


def ntp_timestamp(t: Union[datetime, float]) -> int:
    """Return the 64-bit NTP timestamp (32-bit seconds | 32-bit fraction)."""
    if isinstance(t, datetime):
        if t.tzinfo is None:
            t = t.astimezone()
        delta = t - _UNIX_EPOCH
        seconds = delta.days * 86400 + delta.seconds
        nanos = delta.microseconds * 1000
    else:
        seconds = math.floor(t)
        nanos = int((t - seconds) * 1e9)
    frac = int(nanos / 1e9 * (1 << 32))
    return (((seconds + NTP_EPOCH_OFFSET) << 32) | frac) & 0xFFFFFFFFFFFFFFFF


def ntp_to_time(ntp: int) -> datetime:
    """Return the UTC time of a 64-bit NTP timestamp."""
    seconds = ntp >> 32
    frac = (ntp & 0xFFFFFFFF) / (1 << 32)
    nanos = int(frac * 1e9)
    return _UNIX_EPOCH + timedelta(seconds=seconds - NTP_EPOCH_OFFSET, microseconds=nanos // 1000)


def current_ntp_timestamp() -> int:
    return ntp_timestamp(datetime.now(timezone.utc))


def _chunks(reader: Any, size: int) -> Iterator[bytes]:
    while True:
        try:
            chunk = reader.read(size)
        except EOFError:
            return
        if not chunk:
            return
        yield chunk


def _write(writer: Any, data: bytes) -> int:
    written = writer.write(data)
    return len(data) if written is None else written


def read_all(reader: Any, sample_size: int) -> bytes:
    """Read everything from ``reader`` in reads of ``sample_size`` bytes."""
    return b"".join(_chunks(reader, sample_size))


def write_all(writer: Any, data: bytes, sample_size: int) -> int:
    """Write ``data`` in pieces of at most ``sample_size`` bytes."""
    return sum(
        _write(writer, data[start : start + sample_size])
        for start in range(0, len(data), sample_size)
    )


def copy_with_buf(reader: Any, writer: Any, size: int) -> int:
    """Copy until end of stream with reads of ``size`` bytes; return bytes written."""
    total = 0
    for chunk in _chunks(reader, size):
        written = _write(writer, chunk)
        total += written
        if written < len(chunk):
            raise OSError("short write")
    return total


def copy_stream(reader: Any, writer: Any) -> int:
    """Copy with reads sized for RTP packets."""
    return copy_with_buf(reader, writer, RTP_BUF_SIZE)


def is_timeout(err: BaseException) -> bool:
    return isinstance(err, TimeoutError)


def close_and_log(closer: Any, msg: str) -> None:
    """Close ``closer`` and log, rather than raise, any failure."""
    try:
        closer.close()
    except Exception as exc:  # noqa: BLE001
        _log.error("%s error=%s", msg, exc)


@dataclass
class RTPWriterBuffer:
    """RTP writer that keeps every packet it is given."""

    packets: list[RTPPacket] = field(default_factory=list)

    def write_rtp(self, packet: RTPPacket) -> None:
        self.packets.append(packet)