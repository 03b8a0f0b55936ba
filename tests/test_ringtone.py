import io
import struct
import threading

import pytest

from rtpmedia.ringtone import AudioRingtone, generate_ringtone_pcm, load_ringtone_pcm


def _samples(pcm):
    return struct.unpack(f"<{len(pcm) // 2}h", pcm)


def test_ringtone_lasts_two_seconds():
    pcm = generate_ringtone_pcm(8000)
    assert len(_samples(pcm)) == 2 * 8000


def test_ringtone_starts_silent_and_stays_within_volume():
    samples = _samples(generate_ringtone_pcm(8000))
    assert samples[0] == 0
    assert max(abs(s) for s in samples) <= int(0.3 * 32767)
    assert any(s != 0 for s in samples)


def test_ringtone_length_follows_sample_rate():
    samples = _samples(generate_ringtone_pcm(16000))
    assert len(samples) == 2 * 16000
    assert samples[0] == 0


def test_load_ringtone_is_cached():
    first = load_ringtone_pcm("PCMU", 8000)
    second = load_ringtone_pcm("PCMU", 8000)
    assert first is second
    assert first == generate_ringtone_pcm(8000)


def test_play_writes_tone_until_cancelled():
    tone = generate_ringtone_pcm(8000)
    out = io.BytesIO()
    cancel = threading.Event()
    cancel.set()
    AudioRingtone(writer=out, ringtone=tone, sample_size=320).play(cancel)
    assert out.getvalue() == tone


def test_play_propagates_write_errors():
    class Broken:
        def write(self, data):
            raise OSError("closed")

    ringtone = AudioRingtone(writer=Broken(), ringtone=b"\x00" * 640, sample_size=320)
    with pytest.raises(OSError):
        ringtone.play(threading.Event())