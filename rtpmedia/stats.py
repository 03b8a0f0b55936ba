"""RTP reception and transmission statistics used for RTCP reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from rtpmedia.packet import ReceptionReport
from rtpmedia.rtputil import ntp_timestamp
from rtpmedia.sequencer import ExtendedSequenceNumber

_U32 = 0xFFFFFFFF
_MAX_TOTAL_LOST = 0xFFFFFF
# Fixed-point scale for delay and round-trip fractions, as used by the sender side.
DLSR_SCALE = 65356


@dataclass
class RTPReadStats:
    """Statistics about RTP packets received from one source."""

    ssrc: int = 0
    first_pkt_sequence_number: int = 0
    last_sequence_number: int = 0
    last_seq: ExtendedSequenceNumber = field(default_factory=ExtendedSequenceNumber)
    # First packet sequence number of the current report interval.
    interval_first_pkt_seq_num: int = 0
    interval_packets_count: int = 0

    packets_count: int = 0
    octet_count: int = 0

    sample_rate: int = 0
    first_rtp_time: Optional[datetime] = None
    first_rtp_timestamp: int = 0
    jitter: float = 0.0
    transit: int = 0

    last_sender_report_ntp: int = 0
    last_sender_report_recv_time: Optional[datetime] = None
    last_reception_report_seq_num: int = 0

    rtt: timedelta = timedelta(0)

    def calc_jitter(self, now: datetime, packet_timestamp: int) -> None:
        """Update the interarrival jitter estimate for a packet arriving at ``now``."""
        elapsed = 0.0
        if self.first_rtp_time is not None:
            elapsed = (now - self.first_rtp_time).total_seconds()
        arrival = (self.first_rtp_timestamp + int(elapsed * self.sample_rate)) & _U32
        transit = arrival - (packet_timestamp & _U32)

        d = abs(transit - self.transit)
        self.transit = transit
        self.jitter += (d - self.jitter) / 16.0


@dataclass
class RTPWriteStats:
    """Statistics about RTP packets sent."""

    ssrc: int = 0
    last_packet_time: Optional[datetime] = None
    last_packet_timestamp: int = 0
    sample_rate: int = 0
    packets_count: int = 0
    octet_count: int = 0


def calc_rtt(now: datetime, last_sender_report: int, delay: int) -> tuple[timedelta, bool]:
    """Return the round-trip time from LSR and DLSR, and whether clocks look skewed."""
    now32 = (ntp_timestamp(now) >> 16) & _U32
    rtt32 = (now32 - last_sender_report - delay) & _U32
    skewed = ((now32 - delay) & _U32) < last_sender_report

    secs = (rtt32 & 0xFFFF0000) >> 16
    fracs = (rtt32 & 0x0000FFFF) / DLSR_SCALE
    rtt = timedelta(seconds=secs) + timedelta(microseconds=int(fracs * 1e6))
    return rtt, skewed


def fraction_lost_float(f: int) -> float:
    """Convert an 8-bit fixed-point loss fraction to a float."""
    return f / 256


def build_reception_report(read_stats: RTPReadStats, now: datetime) -> ReceptionReport:
    """Build a reception report block from the current read statistics."""
    received_last_seq = read_stats.last_seq.read_extended_seq()
    interval_expected = received_last_seq - read_stats.interval_first_pkt_seq_num
    interval_lost = max(interval_expected - read_stats.interval_packets_count, 0)
    fraction = 0.0
    if interval_expected != 0:
        fraction = interval_lost / interval_expected
    fraction_lost = min(int(max(fraction * 256, 0)), 255)

    expected_pkts = received_last_seq - read_stats.first_pkt_sequence_number
    lost = expected_pkts - read_stats.packets_count
    total_lost = 0 if lost < 0 else min(lost, _MAX_TOTAL_LOST)

    delay = 0.0
    if read_stats.last_sender_report_recv_time is not None:
        delay = (now - read_stats.last_sender_report_recv_time).total_seconds()

    sequence_cycles = 0
    return ReceptionReport(
        ssrc=read_stats.ssrc,
        fraction_lost=fraction_lost,
        total_lost=total_lost,
        last_sequence_number=((sequence_cycles << 16) + read_stats.last_sequence_number) & _U32,
        jitter=int(read_stats.jitter) & _U32,
        last_sender_report=(read_stats.last_sender_report_ntp >> 16) & _U32,
        delay=int(delay * DLSR_SCALE) & _U32,
    )


@dataclass
class RTPStatsReader:
    """Reader that reports the session's read statistics after each successful read."""

    reader: Any
    rtp_session: Any
    on_rtp_read_stats: Callable[[RTPReadStats], None]

    def read(self, size: int) -> bytes:
        data = self.reader.read(size)
        self.on_rtp_read_stats(self.rtp_session.read_stats())
        return data


@dataclass
class RTPStatsWriter:
    """Writer that reports the session's write statistics after each successful write."""

    writer: Any
    rtp_session: Any
    on_rtp_write_stats: Callable[[RTPWriteStats], None]

    def write(self, data: bytes) -> int:
        written = self.writer.write(data)
        self.on_rtp_write_stats(self.rtp_session.write_stats())
        return len(data) if written is None else written