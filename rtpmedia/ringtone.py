"""Ringback tone generation and playback."""

from __future__ import annotations

import math
import struct
import threading
from dataclasses import dataclass
from typing import Any, Optional

from rtpmedia.rtputil import write_all

_DURATION_SEC = 2
_VOLUME = 0.3
_FREQ1 = 350.0
_FREQ2 = 440.0
_INT16_MAX = 32767

_cache: dict[str, bytes] = {}
_cache_lock = threading.Lock()


def generate_ringtone_pcm(sample_rate: int) -> bytes:
    """Two seconds of a 350 Hz + 440 Hz tone as 16-bit little-endian PCM."""
    samples = []
    for i in range(sample_rate * _DURATION_SEC):
        t = i / sample_rate
        value = _VOLUME * (math.sin(2 * math.pi * _FREQ1 * t) + math.sin(2 * math.pi * _FREQ2 * t)) / 2.0
        samples.append(int(value * _INT16_MAX))
    return struct.pack(f"<{len(samples)}h", *samples)


def load_ringtone_pcm(codec_name: str, sample_rate: int) -> bytes:
    """Return the ringtone for a codec, generating it once per name and rate."""
    key = f"{codec_name}-{sample_rate}"
    with _cache_lock:
        pcm = _cache.get(key)
        if pcm is None:
            pcm = generate_ringtone_pcm(sample_rate)
            _cache[key] = pcm
        return pcm


@dataclass
class AudioRingtone:
    """Writes the ringtone repeatedly with a pause between repetitions."""

    writer: Any
    ringtone: bytes
    sample_size: int
    interval: float = 4.0

    def play(self, cancel: Optional[threading.Event] = None) -> None:
        """Play until ``cancel`` is set; write errors propagate."""
        while True:
            write_all(self.writer, self.ringtone, self.sample_size)
            if cancel is None:
                threading.Event().wait(self.interval)
            elif cancel.wait(self.interval):
                return