"""RTP payload format lists as carried in SDP media descriptions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

FORMAT_TYPE_ULAW = "0"
FORMAT_TYPE_ALAW = "8"
FORMAT_TYPE_OPUS = "96"
FORMAT_TYPE_TELEPHONE_EVENT = "101"

FORMAT_VIDEO_TYPE_H264 = "96"
FORMAT_VIDEO_TYPE_VP8 = "97"
FORMAT_VIDEO_TYPE_VP9 = "98"

_AUDIO_LABELS = {
    FORMAT_TYPE_ULAW: "0(ulaw)",
    FORMAT_TYPE_ALAW: "8(alaw)",
    FORMAT_TYPE_OPUS: "96(opus)",
}

_VIDEO_LABELS = {
    FORMAT_VIDEO_TYPE_H264: "96(H264)",
    FORMAT_VIDEO_TYPE_VP8: "97(VP8)",
    FORMAT_VIDEO_TYPE_VP9: "98(VP9)",
}


def _numeric(fmts: Iterable[str]) -> list[int]:
    return [int(f) for f in fmts]


def _describe(fmts: Iterable[str], labels: Mapping[str, str]) -> str:
    return ",".join(labels.get(f, f) for f in fmts)


class Formats(list):
    """Audio payload formats, e.g. ``Formats(["0", "8"])``."""

    def to_numeric(self) -> list[int]:
        """Return the formats as integers; raise ValueError on a non-number."""
        return _numeric(self)

    def __str__(self) -> str:
        return _describe(self, _AUDIO_LABELS)


class VideoFormats(list):
    """Video payload formats."""

    def to_numeric(self) -> list[int]:
        """Return the formats as integers; raise ValueError on a non-number."""
        return _numeric(self)

    def __str__(self) -> str:
        return _describe(self, _VIDEO_LABELS)


def format_numeric(f: str) -> int:
    """Return the payload type of ``f`` truncated to 8 bits."""
    return int(f) & 0xFF