"""Packetizing payloads into RTP packets paced by the media clock."""

from __future__ import annotations

import random
import threading
import time
from typing import Any, Optional

from rtpmedia.packet import RTPHeader, RTPPacket
from rtpmedia.sequencer import ExtendedSequenceNumber, new_sequencer

_U32 = 0xFFFFFFFF


class _Clock:
    """Periodic ticks on the monotonic clock; missed ticks are dropped."""

    def __init__(self, interval: float) -> None:
        self.reset(interval)

    def reset(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("sample duration must be positive")
        self.interval = interval
        self._next = time.monotonic() + interval

    def wait(self) -> float:
        """Block until the next tick and return its time."""
        now = time.monotonic()
        if self._next > now:
            time.sleep(self._next - now)
            now = time.monotonic()
        tick = self._next
        self._next += self.interval
        if self._next < now:
            self._next = now + self.interval
        return tick


def _frame_timestamp(sample_rate: int, sample_duration: float) -> int:
    return round(sample_rate * sample_duration)


class RTPPacketWriter:
    """Wraps payloads in RTP packets with one SSRC and hands them to ``writer``.

    ``writer`` must provide ``write_rtp(packet)``. Each :meth:`write` advances
    the RTP timestamp by one frame and waits for the frame clock, so writes
    are paced at ``sample_duration`` seconds. For several streams, use
    several writers.
    """

    def __init__(
        self,
        writer: Any,
        payload_type: int,
        sample_rate: int,
        sample_duration: float = 0.02,
        *,
        ssrc: Optional[int] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._writer = writer
        self.payload_type = payload_type
        self.sample_rate = sample_rate
        self.ssrc = random.getrandbits(32) if ssrc is None else ssrc & _U32
        self.seq_writer: ExtendedSequenceNumber = new_sequencer()
        self.packet_header = RTPHeader()

        self.init_timestamp = 0
        self.next_timestamp = self.init_timestamp
        self.sample_rate_timestamp = _frame_timestamp(sample_rate, sample_duration)
        self.last_sample_time: Optional[float] = None
        self._clock = _Clock(sample_duration)

    @property
    def writer(self) -> Any:
        with self._lock:
            return self._writer

    def reset_timestamp(self) -> None:
        """Mark the start of a new stream, carrying over the time gap.

        The elapsed time since the last frame is added to the RTP timestamp
        and the next packet gets the marker bit. Must not be called while
        a write is in progress.
        """
        with self._lock:
            if self.last_sample_time is None:
                return
            diff = time.monotonic() - self.last_sample_time
            self.next_timestamp = (self.next_timestamp + int(diff * self.sample_rate)) & _U32
            self.init_timestamp = self.next_timestamp

    def delay_timestamp(self, offset: int) -> None:
        """Advance the next RTP timestamp by ``offset`` clock units."""
        with self._lock:
            self.next_timestamp = (self.next_timestamp + offset) & _U32

    def write(self, data: bytes) -> int:
        """Send ``data`` as one frame, then wait for the frame clock.

        Not safe for concurrent use; frames must be written in order.
        """
        try:
            with self._lock:
                return self.write_samples(
                    data,
                    self.sample_rate_timestamp,
                    self.next_timestamp == self.init_timestamp,
                    self.payload_type,
                )
        finally:
            self.last_sample_time = self._clock.wait()

    def write_samples(
        self, payload: bytes, sample_rate_timestamp: int, marker: bool, payload_type: int
    ) -> int:
        """Send ``payload`` immediately with the given clock step, marker and type.

        Useful for a different payload (such as DTMF) on the same SSRC.
        """
        with self._lock:
            header = RTPHeader(
                version=2,
                marker=marker,
                payload_type=payload_type,
                sequence_number=self.seq_writer.next_seq_number(),
                timestamp=self.next_timestamp,
                ssrc=self.ssrc,
            )
            packet = RTPPacket(header=header, payload=bytes(payload))
            self.next_timestamp = (self.next_timestamp + sample_rate_timestamp) & _U32
            writer = self._writer
            try:
                writer.write_rtp(packet)
            finally:
                self.packet_header = header
            return len(packet.payload)

    def update_writer(
        self, writer: Any, payload_type: int, sample_rate: int, sample_duration: float
    ) -> None:
        """Switch to a new writer and codec, keeping SSRC and sequence numbers."""
        with self._lock:
            self._writer = writer
            self.payload_type = payload_type
            self.sample_rate = sample_rate
            self.sample_rate_timestamp = _frame_timestamp(sample_rate, sample_duration)
            self._clock.reset(sample_duration)