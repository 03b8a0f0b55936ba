"""Minimal audio SDP generation."""

from __future__ import annotations

import math
import time
from datetime import datetime
from enum import Enum
from typing import Iterable, Union

from rtpmedia.sdp.formats import (
    FORMAT_TYPE_ALAW,
    FORMAT_TYPE_OPUS,
    FORMAT_TYPE_TELEPHONE_EVENT,
    FORMAT_TYPE_ULAW,
)

_NTP_EPOCH_OFFSET = 2208988800


class Mode(str, Enum):
    """Media direction attribute values."""

    RECVONLY = "recvonly"
    SENDRECV = "sendrecv"
    SENDONLY = "sendonly"

    def __str__(self) -> str:
        return self.value


def current_ntp_seconds() -> int:
    """Seconds since the NTP epoch for the current time."""
    return int(time.time()) + _NTP_EPOCH_OFFSET


def ntp_seconds(now: datetime) -> int:
    """Seconds since the NTP epoch for ``now``."""
    return math.floor(now.timestamp()) + _NTP_EPOCH_OFFSET


_FORMAT_ATTRIBUTES = {
    FORMAT_TYPE_ULAW: ["a=rtpmap:0 PCMU/8000"],
    FORMAT_TYPE_ALAW: ["a=rtpmap:8 PCMA/8000"],
    # useinbandfec=0 is recommended when FEC cannot be used on receive.
    FORMAT_TYPE_OPUS: ["a=rtpmap:96 opus/48000/2", "a=fmtp:96 useinbandfec=0"],
    FORMAT_TYPE_TELEPHONE_EVENT: ["a=rtpmap:101 telephone-event/8000", "a=fmtp:101 0-16"],
}


def generate_for_audio(
    origin_ip: object,
    connection_ip: object,
    rtp_port: int,
    mode: Union[Mode, str],
    fmts: Iterable[str],
) -> bytes:
    """Build an audio-only SDP body with CRLF line endings."""
    fmts = list(fmts)
    ntp = current_ntp_seconds()
    mode_value = mode.value if isinstance(mode, Mode) else mode

    lines = [
        "v=0",
        f"o=- {ntp} {ntp} IN IP4 {origin_ip}",
        "s=Sip Go Media",
        f"c=IN IP4 {connection_ip}",
        "t=0 0",
        f"m=audio {rtp_port} RTP/AVP {' '.join(fmts)}",
    ]
    for f in fmts:
        lines.extend(_FORMAT_ATTRIBUTES.get(f, []))
    lines.extend(["a=ptime:20", "a=maxptime:20", f"a={mode_value}"])
    return ("\r\n".join(lines) + "\r\n").encode()