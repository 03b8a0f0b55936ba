"""RTP and RTCP packet encoding and decoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field, replace
from typing import Optional, Union

RTP_HEADER_SIZE = 12
RTCP_HEADER_SIZE = 4

TYPE_SENDER_REPORT = 200
TYPE_RECEIVER_REPORT = 201
TYPE_SOURCE_DESCRIPTION = 202
TYPE_GOODBYE = 203

SDES_END = 0
SDES_CNAME = 1

_RECEPTION_REPORT_SIZE = 24
_U32 = 0xFFFFFFFF


class PacketError(ValueError):
    """Raised when a packet cannot be encoded or decoded."""


def _padded_len(n: int) -> int:
    return (n + 3) // 4 * 4


@dataclass
class RTPHeader:
    """Fixed RTP header plus optional CSRC list and extension."""

    version: int = 2
    padding: bool = False
    extension: bool = False
    marker: bool = False
    payload_type: int = 0
    sequence_number: int = 0
    timestamp: int = 0
    ssrc: int = 0
    csrc: list[int] = field(default_factory=list)
    extension_profile: int = 0
    extension_payload: bytes = b""

    def marshal_size(self) -> int:
        size = RTP_HEADER_SIZE + 4 * len(self.csrc)
        if self.extension:
            size += 4 + _padded_len(len(self.extension_payload))
        return size

    def marshal(self) -> bytes:
        if len(self.csrc) > 15:
            raise PacketError("rtp: too many CSRC identifiers")
        first = (
            (self.version & 0x3) << 6
            | int(self.padding) << 5
            | int(self.extension) << 4
            | len(self.csrc)
        )
        second = int(self.marker) << 7 | (self.payload_type & 0x7F)
        out = bytearray(
            struct.pack(
                "!BBHII",
                first,
                second,
                self.sequence_number & 0xFFFF,
                self.timestamp & _U32,
                self.ssrc & _U32,
            )
        )
        for csrc in self.csrc:
            out += struct.pack("!I", csrc & _U32)
        if self.extension:
            payload = self.extension_payload
            payload += bytes(-len(payload) % 4)
            out += struct.pack("!HH", self.extension_profile & 0xFFFF, len(payload) // 4)
            out += payload
        return bytes(out)


@dataclass
class RTPPacket:
    """An RTP header with its payload."""

    header: RTPHeader = field(default_factory=RTPHeader)
    payload: bytes = b""
    padding_size: int = 0

    def marshal(self) -> bytes:
        if not 0 <= self.padding_size <= 255:
            raise PacketError("rtp: invalid padding size")
        header = replace(self.header, padding=self.padding_size > 0)
        out = header.marshal() + bytes(self.payload)
        if self.padding_size:
            out += bytes(self.padding_size - 1) + bytes([self.padding_size])
        return out


def parse_rtp_header(buf: bytes) -> tuple[RTPHeader, int]:
    """Decode an RTP header; return it and the number of bytes it took."""
    if len(buf) < RTP_HEADER_SIZE:
        raise PacketError("rtp: header size insufficient")
    first, second, seq, ts, ssrc = struct.unpack_from("!BBHII", buf)
    csrc_count = first & 0x0F
    n = RTP_HEADER_SIZE + 4 * csrc_count
    if len(buf) < n:
        raise PacketError("rtp: header size insufficient for CSRC list")
    header = RTPHeader(
        version=first >> 6,
        padding=bool(first & 0x20),
        extension=bool(first & 0x10),
        marker=bool(second & 0x80),
        payload_type=second & 0x7F,
        sequence_number=seq,
        timestamp=ts,
        ssrc=ssrc,
        csrc=list(struct.unpack_from(f"!{csrc_count}I", buf, RTP_HEADER_SIZE)),
    )
    if header.extension:
        if len(buf) < n + 4:
            raise PacketError("rtp: header size insufficient for extension")
        profile, words = struct.unpack_from("!HH", buf, n)
        n += 4
        ext_len = words * 4
        if len(buf) < n + ext_len:
            raise PacketError("rtp: header size insufficient for extension payload")
        header.extension_profile = profile
        header.extension_payload = bytes(buf[n : n + ext_len])
        n += ext_len
    return header, n


def rtp_unmarshal(buf: bytes) -> RTPPacket:
    """Decode an RTP packet, copying the payload and dropping header extensions."""
    header, n = parse_rtp_header(buf)
    if header.extension:
        header.extension = False
        header.extension_profile = 0
        header.extension_payload = b""

    end = len(buf)
    padding_size = 0
    if header.padding:
        padding_size = buf[-1]
        end -= padding_size
    if end < n:
        raise PacketError("rtp: short buffer")
    return RTPPacket(header=header, payload=bytes(buf[n:end]), padding_size=padding_size)


@dataclass
class RTCPHeader:
    """Common RTCP header."""

    padding: bool = False
    count: int = 0
    packet_type: int = 0
    length: int = 0
    version: int = 2

    def marshal(self) -> bytes:
        if not 0 <= self.count <= 31:
            raise PacketError("rtcp: invalid count")
        first = (self.version & 0x3) << 6 | int(self.padding) << 5 | self.count
        return struct.pack("!BBH", first, self.packet_type & 0xFF, self.length & 0xFFFF)


def parse_rtcp_header(data: bytes) -> RTCPHeader:
    """Decode the 4-byte RTCP header."""
    if len(data) < RTCP_HEADER_SIZE:
        raise PacketError("rtcp: packet too short")
    first, packet_type, length = struct.unpack_from("!BBH", data)
    version = first >> 6
    if version != 2:
        raise PacketError("rtcp: invalid packet version")
    return RTCPHeader(
        padding=bool(first & 0x20),
        count=first & 0x1F,
        packet_type=packet_type,
        length=length,
        version=version,
    )


def _frame(count: int, packet_type: int, body: bytes) -> bytes:
    if len(body) % 4:
        raise PacketError("rtcp: body not 32-bit aligned")
    header = RTCPHeader(count=count, packet_type=packet_type, length=len(body) // 4)
    return header.marshal() + body


def _body(data: bytes, expected_type: int) -> tuple[RTCPHeader, bytes]:
    header = parse_rtcp_header(data)
    if header.packet_type != expected_type:
        raise PacketError("rtcp: wrong packet type")
    body = bytes(data[RTCP_HEADER_SIZE:])
    if header.padding:
        if not body or body[-1] == 0 or body[-1] > len(body):
            raise PacketError("rtcp: invalid padding")
        body = body[: -body[-1]]
    return header, body


def _reports(body: bytes, offset: int, count: int) -> tuple[list[ReceptionReport], int]:
    reports = []
    for _ in range(count):
        if len(body) < offset + _RECEPTION_REPORT_SIZE:
            raise PacketError("rtcp: packet too short for reception reports")
        reports.append(ReceptionReport._from_bytes(body[offset : offset + _RECEPTION_REPORT_SIZE]))
        offset += _RECEPTION_REPORT_SIZE
    return reports, offset


@dataclass
class ReceptionReport:
    """Reception report block carried by sender and receiver reports."""

    ssrc: int = 0
    fraction_lost: int = 0
    total_lost: int = 0
    last_sequence_number: int = 0
    jitter: int = 0
    last_sender_report: int = 0
    delay: int = 0

    def _marshal(self) -> bytes:
        if not 0 <= self.total_lost <= 0xFFFFFF:
            raise PacketError("rtcp: invalid total lost count")
        return struct.pack(
            "!IB3sIIII",
            self.ssrc & _U32,
            self.fraction_lost & 0xFF,
            self.total_lost.to_bytes(3, "big"),
            self.last_sequence_number & _U32,
            self.jitter & _U32,
            self.last_sender_report & _U32,
            self.delay & _U32,
        )

    @classmethod
    def _from_bytes(cls, data: bytes) -> ReceptionReport:
        ssrc, fraction, lost, seq, jitter, lsr, dlsr = struct.unpack_from("!IB3sIIII", data)
        return cls(ssrc, fraction, int.from_bytes(lost, "big"), seq, jitter, lsr, dlsr)


@dataclass
class SenderReport:
    """RTCP sender report."""

    ssrc: int = 0
    ntp_time: int = 0
    rtp_time: int = 0
    packet_count: int = 0
    octet_count: int = 0
    reports: list[ReceptionReport] = field(default_factory=list)
    profile_extensions: bytes = b""

    def marshal(self) -> bytes:
        body = struct.pack(
            "!IQIII",
            self.ssrc & _U32,
            self.ntp_time & 0xFFFFFFFFFFFFFFFF,
            self.rtp_time & _U32,
            self.packet_count & _U32,
            self.octet_count & _U32,
        )
        body += b"".join(r._marshal() for r in self.reports) + self.profile_extensions
        return _frame(len(self.reports), TYPE_SENDER_REPORT, body)

    @classmethod
    def _from_bytes(cls, data: bytes) -> SenderReport:
        header, body = _body(data, TYPE_SENDER_REPORT)
        if len(body) < 24:
            raise PacketError("rtcp: sender report too short")
        ssrc, ntp, rtp_time, packets, octets = struct.unpack_from("!IQIII", body)
        reports, offset = _reports(body, 24, header.count)
        return cls(ssrc, ntp, rtp_time, packets, octets, reports, body[offset:])


@dataclass
class ReceiverReport:
    """RTCP receiver report."""

    ssrc: int = 0
    reports: list[ReceptionReport] = field(default_factory=list)
    profile_extensions: bytes = b""

    def marshal(self) -> bytes:
        body = struct.pack("!I", self.ssrc & _U32)
        body += b"".join(r._marshal() for r in self.reports) + self.profile_extensions
        return _frame(len(self.reports), TYPE_RECEIVER_REPORT, body)

    @classmethod
    def _from_bytes(cls, data: bytes) -> ReceiverReport:
        header, body = _body(data, TYPE_RECEIVER_REPORT)
        if len(body) < 4:
            raise PacketError("rtcp: receiver report too short")
        (ssrc,) = struct.unpack_from("!I", body)
        reports, offset = _reports(body, 4, header.count)
        return cls(ssrc, reports, body[offset:])


@dataclass
class SourceDescription:
    """RTCP SDES packet; each chunk is ``(source, [(item_type, text), ...])``."""

    chunks: list[tuple[int, list[tuple[int, bytes]]]] = field(default_factory=list)

    def marshal(self) -> bytes:
        body = bytearray()
        for source, items in self.chunks:
            chunk = bytearray(struct.pack("!I", source & _U32))
            for item_type, text in items:
                raw = text.encode() if isinstance(text, str) else bytes(text)
                if item_type == SDES_END or not 0 < item_type <= 255:
                    raise PacketError("rtcp: invalid SDES item type")
                if len(raw) > 255:
                    raise PacketError("rtcp: SDES item too long")
                chunk += bytes([item_type, len(raw)]) + raw
            chunk += b"\x00"
            chunk += bytes(-len(chunk) % 4)
            body += chunk
        return _frame(len(self.chunks), TYPE_SOURCE_DESCRIPTION, bytes(body))

    @classmethod
    def _from_bytes(cls, data: bytes) -> SourceDescription:
        header, body = _body(data, TYPE_SOURCE_DESCRIPTION)
        chunks = []
        offset = 0
        for _ in range(header.count):
            start = offset
            if len(body) < offset + 4:
                raise PacketError("rtcp: SDES chunk too short")
            (source,) = struct.unpack_from("!I", body, offset)
            offset += 4
            items = []
            while True:
                if offset >= len(body):
                    raise PacketError("rtcp: SDES chunk not terminated")
                item_type = body[offset]
                if item_type == SDES_END:
                    offset += 1
                    break
                if offset + 2 > len(body):
                    raise PacketError("rtcp: SDES item too short")
                length = body[offset + 1]
                if offset + 2 + length > len(body):
                    raise PacketError("rtcp: SDES item too short")
                items.append((item_type, body[offset + 2 : offset + 2 + length]))
                offset += 2 + length
            offset = start + _padded_len(offset - start)
            chunks.append((source, items))
        return cls(chunks)


@dataclass
class Goodbye:
    """RTCP BYE packet."""

    sources: list[int] = field(default_factory=list)
    reason: str = ""

    def marshal(self) -> bytes:
        body = b"".join(struct.pack("!I", s & _U32) for s in self.sources)
        if self.reason:
            raw = self.reason.encode()
            if len(raw) > 255:
                raise PacketError("rtcp: goodbye reason too long")
            tail = bytes([len(raw)]) + raw
            body += tail + bytes(-len(tail) % 4)
        return _frame(len(self.sources), TYPE_GOODBYE, body)

    @classmethod
    def _from_bytes(cls, data: bytes) -> Goodbye:
        header, body = _body(data, TYPE_GOODBYE)
        end = 4 * header.count
        if len(body) < end:
            raise PacketError("rtcp: goodbye too short")
        sources = list(struct.unpack_from(f"!{header.count}I", body))
        rest = body[end:]
        reason = ""
        if rest and rest[0]:
            length = rest[0]
            if 1 + length > len(rest):
                raise PacketError("rtcp: goodbye reason too short")
            reason = rest[1 : 1 + length].decode("utf-8", errors="replace")
        return cls(sources, reason)


@dataclass
class RawRTCPPacket:
    """An RTCP packet of a type that is not decoded further."""

    data: bytes = b""

    def marshal(self) -> bytes:
        return bytes(self.data)

    @classmethod
    def _from_bytes(cls, data: bytes) -> RawRTCPPacket:
        parse_rtcp_header(data)
        return cls(bytes(data))


RTCPPacket = Union[SenderReport, ReceiverReport, SourceDescription, Goodbye, RawRTCPPacket]

_TYPED = {
    TYPE_SENDER_REPORT: SenderReport,
    TYPE_RECEIVER_REPORT: ReceiverReport,
    TYPE_SOURCE_DESCRIPTION: SourceDescription,
    TYPE_GOODBYE: Goodbye,
}


def rtcp_unmarshal(data: bytes, limit: Optional[int] = None) -> list[RTCPPacket]:
    """Decode up to ``limit`` packets from a compound RTCP datagram."""
    packets: list[RTCPPacket] = []
    data = bytes(data)
    while data and (limit is None or len(packets) < limit):
        try:
            header = parse_rtcp_header(data)
        except PacketError as exc:
            raise PacketError(f"{exc}: rtcp: failed to unmarshal") from exc
        pkt_len = (header.length + 1) * 4
        if pkt_len > len(data):
            raise PacketError("packet too short: rtcp: failed to unmarshal")
        packet_cls = _TYPED.get(header.packet_type, RawRTCPPacket)
        packets.append(packet_cls._from_bytes(data[:pkt_len]))
        data = data[pkt_len:]
    return packets


def rtcp_marshal(packets: list[RTCPPacket]) -> bytes:
    """Encode packets into one compound RTCP datagram."""
    return b"".join(p.marshal() for p in packets)