import time

import pytest

from rtpmedia.packet import rtp_unmarshal
from rtpmedia.packet_writer import RTPPacketWriter
from rtpmedia.rtputil import RTPWriterBuffer, write_all
from rtpmedia.session import RTPSession


class FakeTransport:
    def __init__(self):
        self.sent = []

    def write_rtp(self, data):
        self.sent.append(bytes(data))
        return len(data)


def test_rtp_writer_over_session():
    transport = FakeTransport()
    session = RTPSession(transport, {8: 8000, 0: 8000})
    writer = RTPPacketWriter(session, 8, 8000)
    writer.seq_writer.init_seq(100)

    payload = b"12312313"
    for i in range(10):
        assert writer.write(payload) == len(payload)
        header = writer.packet_header
        assert header.payload_type == writer.payload_type
        assert header.ssrc == writer.ssrc
        assert writer.seq_writer.read_extended_seq() == header.sequence_number
        assert writer.next_timestamp == header.timestamp + 160
        assert header.marker == (i == 0)

        sent = rtp_unmarshal(transport.sent[-1])
        assert sent.payload == payload
        assert sent.header.sequence_number == header.sequence_number

    stats = session.write_stats()
    assert stats.ssrc == writer.ssrc
    assert stats.packets_count == 10
    assert stats.octet_count == 80


def test_audio_to_rtp_generator_example():
    audio = bytearray(4 * 160)
    data = b"0123456789" * 32
    audio[: len(data)] = data
    buffer = RTPWriterBuffer()
    generator = RTPPacketWriter(buffer, 8, 8000)

    written = write_all(generator, bytes(audio), 160)

    assert written == 640
    assert len(buffer.packets) == 4
    timestamps = [p.header.timestamp for p in buffer.packets]
    assert timestamps == [0, 160, 320, 480]
    assert [p.header.marker for p in buffer.packets] == [True, False, False, False]


def test_sequence_numbers_increase_by_one():
    buffer = RTPWriterBuffer()
    writer = RTPPacketWriter(buffer, 0, 8000, 0.001)
    writer.seq_writer.init_seq(65534)
    for _ in range(3):
        writer.write(b"x")
    assert [p.header.sequence_number for p in buffer.packets] == [65535, 0, 1]
    assert writer.seq_writer.read_extended_seq() == 65536 + 1


def test_write_is_paced_by_clock():
    buffer = RTPWriterBuffer()
    writer = RTPPacketWriter(buffer, 0, 8000, 0.01)
    start = time.monotonic()
    for _ in range(5):
        writer.write(b"\x00" * 80)
    assert time.monotonic() - start >= 0.04
    assert len(buffer.packets) == 5


def test_write_samples_does_not_wait_and_uses_given_values():
    buffer = RTPWriterBuffer()
    writer = RTPPacketWriter(buffer, 0, 8000, ssrc=42)
    n = writer.write_samples(b"\x01\x02\x03\x04", 0, True, 101)
    assert n == 4
    packet = buffer.packets[0]
    assert packet.header.payload_type == 101
    assert packet.header.marker is True
    assert packet.header.ssrc == 42
    assert writer.next_timestamp == 0


def test_reset_timestamp_sets_marker_again():
    buffer = RTPWriterBuffer()
    writer = RTPPacketWriter(buffer, 0, 8000, 0.01)
    writer.write(b"a")
    time.sleep(0.05)
    writer.reset_timestamp()
    assert writer.init_timestamp == writer.next_timestamp
    assert writer.next_timestamp > 80
    writer.write(b"b")
    assert buffer.packets[1].header.marker is True


def test_reset_timestamp_before_any_write_changes_nothing():
    writer = RTPPacketWriter(RTPWriterBuffer(), 0, 8000)
    writer.reset_timestamp()
    assert writer.next_timestamp == 0
    assert writer.init_timestamp == 0


def test_delay_timestamp():
    buffer = RTPWriterBuffer()
    writer = RTPPacketWriter(buffer, 0, 8000, 0.001)
    writer.delay_timestamp(1000)
    writer.write(b"a")
    assert buffer.packets[0].header.timestamp == 1000
    assert buffer.packets[0].header.marker is False


def test_update_writer_switches_codec_and_target():
    first = RTPWriterBuffer()
    second = RTPWriterBuffer()
    writer = RTPPacketWriter(first, 0, 8000, 0.001)
    writer.write(b"a")
    writer.update_writer(second, 96, 48000, 0.001)
    writer.write(b"b")
    assert len(first.packets) == 1
    assert len(second.packets) == 1
    assert second.packets[0].header.payload_type == 96
    assert second.packets[0].header.ssrc == first.packets[0].header.ssrc
    assert writer.writer is second
    assert writer.next_timestamp == 8 + 48


def test_invalid_sample_duration():
    with pytest.raises(ValueError):
        RTPPacketWriter(RTPWriterBuffer(), 0, 8000, 0)