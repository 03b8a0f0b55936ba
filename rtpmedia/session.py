"""RTP session: reads and writes RTP and keeps the statistics for RTCP reports.

The session works over a transport object providing:

* ``read_rtp(size) -> bytes`` and ``write_rtp(data)`` for RTP datagrams,
* ``read_rtcp(size) -> bytes`` and ``write_rtcp(data)`` for RTCP datagrams,
* ``interrupt_rtcp()``, which makes a pending and any later ``read_rtcp``
  raise ``TimeoutError``,
* ``remote_addr`` and ``rtcp_remote_addr`` attributes, ``None`` until the
  remote side is known.

An empty read, or ``EOFError``, ends a stream.
"""

from __future__ import annotations

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from rtpmedia.packet import (
    PacketError,
    ReceiverReport,
    ReceptionReport,
    RTCPPacket,
    RTPPacket,
    SenderReport,
    rtcp_unmarshal,
    rtp_unmarshal,
)
from rtpmedia.rtputil import RTP_BUF_SIZE, ntp_timestamp
from rtpmedia.sdp.generate import Mode
from rtpmedia.sequencer import SequenceError
from rtpmedia.stats import RTPReadStats, RTPWriteStats, build_reception_report, calc_rtt

_log = logging.getLogger(__name__)

_U32 = 0xFFFFFFFF
_RTCP_BUF_SIZE = 1600
_RTCP_MAX_PACKETS = 5
_UNMARSHAL_FAILED = "rtcp: failed to unmarshal"

OnReadRTCP = Callable[[RTCPPacket, RTPReadStats], None]
OnWriteRTCP = Callable[[RTCPPacket, RTPWriteStats], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RTPSession:
    """Unicast RTP reader/writer with RTCP quality reporting.

    ``codecs`` maps payload type to sample rate, in order of preference.
    Only the latest SSRC in each direction is tracked.
    """

    def __init__(
        self,
        transport: Any,
        codecs: Union[Mapping[int, int], Iterable[tuple[int, int]]],
        *,
        mode: Union[Mode, str] = Mode.SENDRECV,
        media_type: str = "audio",
        rtcp_interval: float = 5.0,
        on_read_rtcp: Optional[OnReadRTCP] = None,
        on_write_rtcp: Optional[OnWriteRTCP] = None,
    ) -> None:
        self.transport = transport
        self.codecs = dict(codecs)
        self.mode = mode
        self.media_type = media_type
        self.rtcp_interval = rtcp_interval

        self._lock = threading.RLock()
        self._closed = threading.Event()
        self._read_stats = RTPReadStats()
        self._write_stats = RTPWriteStats()
        self._on_read_rtcp = on_read_rtcp
        self._on_write_rtcp = on_write_rtcp

    def __enter__(self) -> RTPSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop RTCP monitoring; safe to call more than once."""
        with self._lock:
            self._closed.set()
        self.transport.interrupt_rtcp()

    def on_read_rtcp(self, callback: Optional[OnReadRTCP]) -> None:
        with self._lock:
            self._on_read_rtcp = callback

    def on_write_rtcp(self, callback: Optional[OnWriteRTCP]) -> None:
        with self._lock:
            self._on_write_rtcp = callback

    def read_rtp(self) -> Optional[RTPPacket]:
        """Read the next RTP packet and update read statistics.

        Keep-alive packets (version 0 or empty payload) are skipped. Returns
        ``None`` when a packet from a new source carries a payload type that
        the session has no codec for; statistics are then left unchanged.
        """
        while True:
            data = self.transport.read_rtp(RTP_BUF_SIZE)
            if not data:
                raise EOFError("rtp stream ended")
            packet = rtp_unmarshal(data)
            if packet.header.version == 0:
                _log.debug("Received RTP with invalid version. Skipping")
                continue
            if not packet.payload:
                _log.debug("Received RTP with empty Payload. Skipping")
                continue
            break

        header = packet.header
        now = _now()
        with self._lock:
            stats = self._read_stats
            if stats.ssrc != header.ssrc:
                if not self.codecs:
                    _log.warning("No codecs available in media session mediaType=%s", self.media_type)
                    return None
                sample_rate = self.codecs.get(header.payload_type)
                if sample_rate is None:
                    _log.warning(
                        "Received RTP with unsupported payload_type pt=%d mediaType=%s availableCodecs=%s",
                        header.payload_type,
                        self.media_type,
                        list(self.codecs),
                    )
                    return None
                stats = RTPReadStats(
                    ssrc=header.ssrc,
                    first_pkt_sequence_number=header.sequence_number,
                    sample_rate=sample_rate,
                    first_rtp_time=now,
                    first_rtp_timestamp=header.timestamp,
                )
                stats.last_seq.init_seq(header.sequence_number)
                self._read_stats = stats
            else:
                try:
                    stats.last_seq.update_seq(header.sequence_number)
                except SequenceError:
                    pass
                if header.marker:
                    # A new talk spurt restarts the jitter reference.
                    stats.first_rtp_time = now
                    stats.first_rtp_timestamp = header.timestamp
                else:
                    stats.calc_jitter(now, header.timestamp)

            stats.interval_packets_count = (stats.interval_packets_count + 1) & 0xFFFF
            stats.packets_count += 1
            stats.octet_count += len(packet.payload)
            stats.last_sequence_number = header.sequence_number
            if stats.interval_first_pkt_seq_num == 0:
                stats.interval_first_pkt_seq_num = header.sequence_number
        return packet

    def read_rtp_raw(self, size: int) -> bytes:
        """Read a raw RTP datagram without touching statistics."""
        return self.transport.read_rtp(size)

    def write_rtp(self, packet: RTPPacket) -> None:
        """Send an RTP packet and update write statistics."""
        self.transport.write_rtp(packet.marshal())

        header = packet.header
        with self._lock:
            stats = self._write_stats
            if stats.ssrc != header.ssrc:
                stats = RTPWriteStats(
                    ssrc=header.ssrc,
                    sample_rate=self.codecs.get(header.payload_type, 0),
                )
                self._write_stats = stats
            stats.packets_count += 1
            stats.octet_count += len(packet.payload)
            stats.last_packet_time = _now()
            stats.last_packet_timestamp = header.timestamp

    def write_rtp_raw(self, data: bytes) -> int:
        """Send a raw RTP datagram without touching statistics."""
        return self.transport.write_rtp(data)

    def read_stats(self) -> RTPReadStats:
        """Return a snapshot of the read statistics."""
        with self._lock:
            return copy.deepcopy(self._read_stats)

    def write_stats(self) -> RTPWriteStats:
        """Return a snapshot of the write statistics."""
        with self._lock:
            return copy.deepcopy(self._write_stats)

    def _require_remote(self) -> None:
        if (
            getattr(self.transport, "remote_addr", None) is None
            or getattr(self.transport, "rtcp_remote_addr", None) is None
        ):
            raise RuntimeError(
                "raddr of RTP is not present. Monitoring must start after the remote SDP is parsed"
            )

    def monitor(self) -> None:
        """Read RTCP and send reports every ``rtcp_interval`` until closed.

        Blocks. Returns once the session is closed; a failure to send a
        report is raised after the RTCP reader has stopped.
        """
        self._require_remote()
        reader_errors: list[BaseException] = []

        def run_reader() -> None:
            try:
                self._read_rtcp()
            except BaseException as exc:  # noqa: BLE001
                reader_errors.append(exc)

        reader = threading.Thread(target=run_reader, name="rtcp-reader", daemon=True)
        reader.start()

        while not self._closed.wait(self.rtcp_interval):
            try:
                self.write_rtcp()
            except Exception as exc:
                reader.join()
                if reader_errors:
                    raise exc from reader_errors[0]
                raise
        _log.debug("RTCP writer closed")

    def monitor_background(self) -> None:
        """Start RTCP reading and periodic reporting in daemon threads."""
        self._require_remote()
        threading.Thread(target=self._background_reader, name="rtcp-reader", daemon=True).start()
        threading.Thread(target=self._background_writer, name="rtcp-writer", daemon=True).start()

    def _background_reader(self) -> None:
        _log.debug("RTCP reader started")
        try:
            self._read_rtcp()
        except EOFError:
            _log.debug("RTP session RTCP reader exit")
        except TimeoutError:
            _log.debug("RTP session RTCP closed with timeout")
        except Exception as exc:  # noqa: BLE001
            _log.error("RTP session RTCP reader stopped with error: %s", exc)

    def _background_writer(self) -> None:
        _log.debug("RTCP writer started")
        while not self._closed.wait(self.rtcp_interval):
            try:
                self.write_rtcp()
            except EOFError:
                _log.debug("RTP session RTCP writer exit")
                return
            except Exception as exc:  # noqa: BLE001
                _log.error("RTP session RTCP writer stopped with error: %s", exc)
                return
        _log.debug("RTCP writer closed")

    def _read_rtcp(self) -> None:
        """Read RTCP datagrams until the transport fails; never returns normally."""
        while True:
            data = self.transport.read_rtcp(_RTCP_BUF_SIZE)
            if not data:
                raise EOFError("rtcp stream ended")
            try:
                packets = rtcp_unmarshal(data, _RTCP_MAX_PACKETS)
            except PacketError as exc:
                if _UNMARSHAL_FAILED in str(exc):
                    _log.error("RTCP Unmarshal error. Continue listen: %s", exc)
                    continue
                raise
            for packet in packets:
                self.read_rtcp_packet(packet)

    def read_rtcp_packet(self, packet: RTCPPacket) -> None:
        """Apply a received RTCP packet to the read statistics."""
        now = _now()
        with self._lock:
            callback = self._on_read_rtcp
            snapshot = copy.deepcopy(self._read_stats) if callback else None
        if callback is not None:
            callback(packet, snapshot)

        with self._lock:
            stats = self._read_stats
            if isinstance(packet, SenderReport):
                # Reports may arrive before any RTP was received.
                if stats.ssrc == 0:
                    stats.ssrc = packet.ssrc
                stats.last_sender_report_ntp = packet.ntp_time
                stats.last_sender_report_recv_time = now
                for report in packet.reports:
                    self._read_reception_report(report, now)
            elif isinstance(packet, ReceiverReport):
                for report in packet.reports:
                    self._read_reception_report(report, now)

    def _read_reception_report(self, report: ReceptionReport, now: datetime) -> None:
        stats = self._read_stats
        if report.ssrc == 0:
            _log.debug("Reception report with SSRC=0, skipping expected=%d", stats.ssrc)
            return
        if stats.ssrc == 0:
            stats.ssrc = report.ssrc
        if report.ssrc != stats.ssrc:
            _log.debug(
                "Reception report SSRC does not match our tracked source ssrc=%d expected=%d",
                report.ssrc,
                stats.ssrc,
            )
            return

        if report.last_sender_report != 0:
            stats.rtt, skewed = calc_rtt(now, report.last_sender_report, report.delay)
            if skewed:
                _log.warning("Internal RTCP clock skew detected ssrc=%d rtt=%s", report.ssrc, stats.rtt)
        stats.last_reception_report_seq_num = report.last_sequence_number

    def write_rtcp(self, now: Optional[datetime] = None) -> Optional[RTCPPacket]:
        """Send a sender or receiver report; return it, or ``None`` if nothing to report.

        A receive-only session sends receiver reports; any other sends
        sender reports. The current reporting interval is restarted.
        """
        if now is None:
            now = _now()
        with self._lock:
            packet: RTCPPacket
            if self.mode == Mode.RECVONLY:
                if self._read_stats.ssrc == 0:
                    return None
                packet = self.parse_receiver_report(now, self._read_stats.ssrc)
            else:
                if self._write_stats.ssrc == 0:
                    return None
                packet = self.parse_sender_report(now, self._write_stats.ssrc)

            self._read_stats.interval_first_pkt_seq_num = 0
            self._read_stats.interval_packets_count = 0

            callback = self._on_write_rtcp
            snapshot = copy.deepcopy(self._write_stats) if callback else None

        if callback is not None:
            callback(packet, snapshot)
        self.transport.write_rtcp(packet.marshal())
        return packet

    def parse_receiver_report(self, now: datetime, ssrc: int) -> ReceiverReport:
        with self._lock:
            return ReceiverReport(ssrc=ssrc, reports=[build_reception_report(self._read_stats, now)])

    def parse_sender_report(self, now: datetime, ssrc: int) -> SenderReport:
        with self._lock:
            ws = self._write_stats
            offset = 0.0
            if ws.last_packet_time is not None:
                offset = (now - ws.last_packet_time).total_seconds() * ws.sample_rate
            report = SenderReport(
                ssrc=ssrc,
                ntp_time=ntp_timestamp(now),
                rtp_time=(ws.last_packet_timestamp + int(offset)) & _U32,
                packet_count=min(ws.packets_count, _U32),
                octet_count=min(ws.octet_count, _U32),
            )
            if self._read_stats.ssrc > 0:
                report.reports = [build_reception_report(self._read_stats, now)]
            return report