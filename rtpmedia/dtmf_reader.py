"""Detecting RFC 4733 telephone events in a received RTP stream."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Any, Optional

from rtpmedia.packet import PacketError

_log = logging.getLogger(__name__)

TELEPHONE_EVENT_PAYLOAD_TYPE = 101
# Events shorter than this many 8 kHz clock units (~60 ms) are ignored.
_MIN_DURATION = 3 * 160

_EVENT_CHARS = "0123456789*#ABCD"


@dataclass
class DTMFEvent:
    """One telephone-event payload."""

    event: int = 0
    end_of_event: bool = False
    volume: int = 0
    duration: int = 0


def dtmf_decode(data: bytes) -> DTMFEvent:
    """Decode a 4-byte telephone-event payload."""
    if len(data) < 4:
        raise PacketError("dtmf: payload too short")
    event, flags, duration = struct.unpack_from("!BBH", data)
    return DTMFEvent(
        event=event,
        end_of_event=bool(flags & 0x80),
        volume=flags & 0x3F,
        duration=duration,
    )


def dtmf_to_char(event: int) -> str:
    """Return the key for an event code: digits, ``*``, ``#`` and ``A``-``D``."""
    if not 0 <= event < len(_EVENT_CHARS):
        raise ValueError(f"unknown DTMF event {event}")
    return _EVENT_CHARS[event]


class RTPDTMFReader:
    """Reader that passes data through and watches it for DTMF events.

    After each read, the header in ``packet_reader.packet_header`` decides
    whether the data was a telephone event. A detected key is returned
    once by :meth:`read_dtmf`.
    """

    def __init__(
        self,
        payload_type: int = TELEPHONE_EVENT_PAYLOAD_TYPE,
        packet_reader: Optional[Any] = None,
        reader: Optional[Any] = None,
    ) -> None:
        self.payload_type = payload_type
        self.packet_reader = packet_reader
        self.reader = reader
        self._last_event = DTMFEvent()
        self._dtmf: Optional[str] = None

    def read(self, size: int) -> bytes:
        data = self.reader.read(size)
        if self.packet_reader.packet_header.payload_type != self.payload_type:
            return data
        try:
            event = dtmf_decode(data)
        except PacketError as exc:
            _log.error("Failed to decode DTMF event error=%s", exc)
            event = DTMFEvent()
        self.process_dtmf_event(event)
        return data

    def process_dtmf_event(self, event: DTMFEvent) -> None:
        """Track an event; a key is detected on its first sufficiently long end."""
        _log.debug("Processing DTMF event ev=%s", event)
        last = self._last_event
        if event.end_of_event:
            # Event 0 is valid, so a zero duration marks "nothing tracked".
            if last.duration == 0 or last.event != event.event:
                return
            duration = event.duration - last.duration
            if duration <= _MIN_DURATION:
                _log.debug("Received DTMF packet but short duration dur=%d", duration)
                return
            try:
                self._dtmf = dtmf_to_char(event.event)
            except ValueError as exc:
                _log.debug("Ignoring DTMF event: %s", exc)
            self._last_event = DTMFEvent()
            return
        if last.duration > 0 and last.event == event.event:
            return
        self._last_event = event

    def read_dtmf(self) -> Optional[str]:
        """Return the key detected since the last call, or ``None``."""
        dtmf, self._dtmf = self._dtmf, None
        return dtmf