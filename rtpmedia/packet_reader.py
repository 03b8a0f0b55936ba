"""Reading RTP payloads as a byte stream."""

from __future__ import annotations

import logging
import threading
from typing import Any

from rtpmedia.packet import RTPHeader
from rtpmedia.rtputil import RTP_BUF_SIZE
from rtpmedia.sequencer import ExtendedSequenceNumber, SequenceDuplicate, SequenceError

_log = logging.getLogger(__name__)


class RTPPacketReader:
    """Reads RTP packets and returns their payloads.

    ``reader`` must provide ``read_rtp()`` returning an ``RTPPacket`` or
    ``None`` for a packet to be skipped, and raising ``EOFError`` at the
    end of the stream. The header of the last packet is kept in
    ``packet_header``. Packets are neither queued nor reordered.
    """

    def __init__(self, reader: Any) -> None:
        self._lock = threading.Lock()
        self._reader = reader
        self.packet_header = RTPHeader()
        self.seq_reader = ExtendedSequenceNumber()
        self._unread = b""
        self._last_ssrc = 0

    @property
    def reader(self) -> Any:
        with self._lock:
            return self._reader

    def update_reader(self, reader: Any) -> None:
        """Read further packets from ``reader``."""
        with self._lock:
            self._reader = reader

    def read(self, size: int) -> bytes:
        """Return up to ``size`` payload bytes.

        A payload longer than ``size`` is returned over several reads
        before the next packet is read.
        """
        if self._unread:
            return self._take(size, self._unread)

        while True:
            packet = self.reader.read_rtp()
            if packet is not None and packet.payload:
                break
            _log.debug("Skipping RTP read without payload")

        header = packet.header
        if self._last_ssrc == header.ssrc:
            prev = self.seq_reader.read_extended_seq()
            try:
                self.seq_reader.update_seq(header.sequence_number)
            except SequenceDuplicate:
                _log.debug(
                    "Duplicate RTP packet received seq=%d ssrc=%d",
                    header.sequence_number,
                    header.ssrc,
                )
            except SequenceError as exc:
                _log.warning(
                    "RTP sequence error error=%s seq=%d ssrc=%d",
                    exc,
                    header.sequence_number,
                    header.ssrc,
                )
            new = self.seq_reader.read_extended_seq()
            if prev + 1 != new:
                _log.debug(
                    "Out of order pkt received expected=%d actual=%d real=%d",
                    prev + 1,
                    new,
                    header.sequence_number,
                )
        else:
            self.seq_reader.init_seq(header.sequence_number)

        self._last_ssrc = header.ssrc
        self.packet_header = header
        return self._take(size, packet.payload)

    def _take(self, size: int, payload: bytes) -> bytes:
        head, rest = payload[:size], payload[size:]
        if len(rest) > RTP_BUF_SIZE:
            _log.error("Payload is huge, it will be unread")
            rest = rest[:RTP_BUF_SIZE]
        self._unread = bytes(rest)
        return bytes(head)