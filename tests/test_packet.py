import pytest

from rtpmedia.packet import (
    Goodbye,
    PacketError,
    RawRTCPPacket,
    ReceiverReport,
    ReceptionReport,
    RTCPHeader,
    RTPHeader,
    RTPPacket,
    SenderReport,
    SourceDescription,
    parse_rtcp_header,
    parse_rtp_header,
    rtcp_marshal,
    rtcp_unmarshal,
    rtp_unmarshal,
)


def test_rtp_header_round_trip():
    header = RTPHeader(
        marker=True, payload_type=8, sequence_number=4321, timestamp=160, ssrc=1234, csrc=[7, 9]
    )
    data = header.marshal()
    parsed, n = parse_rtp_header(data)
    assert parsed == header
    assert n == len(data) == header.marshal_size()


def test_rtp_header_wire_start():
    data = RTPHeader(marker=True, payload_type=8, ssrc=1234).marshal()
    assert data[:2] == bytes([0x80, 0x88])


def test_rtp_header_with_extension_round_trip():
    header = RTPHeader(extension=True, extension_profile=0xBEDE, extension_payload=b"abcd")
    data = header.marshal()
    parsed, n = parse_rtp_header(data)
    assert parsed == header
    assert n == header.marshal_size() == len(data)


def test_rtp_packet_round_trip():
    payload = b"12312313"
    packet = RTPPacket(
        header=RTPHeader(payload_type=8, sequence_number=3, timestamp=480, ssrc=1234),
        payload=payload,
    )
    decoded = rtp_unmarshal(packet.marshal())
    assert decoded.payload == payload
    assert decoded.header.ssrc == 1234
    assert decoded.header.sequence_number == 3
    assert decoded.padding_size == 0


def test_rtp_unmarshal_strips_padding():
    packet = RTPPacket(header=RTPHeader(ssrc=5), payload=b"hello", padding_size=3)
    decoded = rtp_unmarshal(packet.marshal())
    assert decoded.payload == b"hello"
    assert decoded.padding_size == 3
    assert decoded.header.padding


def test_rtp_unmarshal_drops_extension():
    header = RTPHeader(extension=True, extension_profile=1, extension_payload=b"wxyz")
    decoded = rtp_unmarshal(RTPPacket(header=header, payload=b"data").marshal())
    assert decoded.payload == b"data"
    assert not decoded.header.extension
    assert decoded.header.extension_payload == b""


def test_rtp_header_too_short():
    with pytest.raises(PacketError):
        parse_rtp_header(b"\x80" * 5)


def test_rtp_csrc_list_truncated():
    with pytest.raises(PacketError):
        parse_rtp_header(bytes([0x82]) + bytes(11))


def test_rtp_padding_beyond_payload():
    data = RTPHeader(padding=True).marshal() + b"\x00\x00\x00\xff"
    with pytest.raises(PacketError):
        rtp_unmarshal(data)


def test_sender_report_header_bytes():
    data = SenderReport(ssrc=1234).marshal()
    assert data[:4] == bytes([0x80, 200, 0x00, 0x06])


def test_rtcp_header_length_matches_packet():
    report = SenderReport(ssrc=1, reports=[ReceptionReport(ssrc=2)])
    data = report.marshal()
    header = parse_rtcp_header(data)
    assert (header.length + 1) * 4 == len(data)
    assert header.count == 1


def test_sender_report_round_trip():
    report = SenderReport(
        ssrc=1234,
        ntp_time=(3905350750 << 32) | 12,
        rtp_time=160,
        packet_count=15,
        octet_count=2400,
        reports=[ReceptionReport(ssrc=99, fraction_lost=34, total_lost=2, last_sequence_number=17)],
    )
    assert rtcp_unmarshal(report.marshal(), 5) == [report]


def test_compound_round_trip_and_limit():
    packets = [
        SenderReport(ssrc=1, packet_count=3),
        ReceiverReport(ssrc=2, reports=[ReceptionReport(ssrc=1, jitter=7)]),
        SourceDescription(chunks=[(5, [(1, b"cname")])]),
        Goodbye(sources=[5, 6], reason="bye"),
    ]
    data = rtcp_marshal(packets)
    assert data == b"".join(p.marshal() for p in packets)
    assert rtcp_unmarshal(data, 5) == packets
    assert rtcp_unmarshal(data, 2) == packets[:2]


def test_unknown_type_is_raw():
    data = RTCPHeader(packet_type=205, length=1).marshal() + bytes(4)
    assert rtcp_unmarshal(data) == [RawRTCPPacket(data=data)]


def test_rtcp_bad_version():
    with pytest.raises(PacketError):
        rtcp_unmarshal(bytes([0x40, 200, 0, 0]), 5)


def test_rtcp_truncated_packet():
    data = SenderReport(ssrc=1).marshal()[:-4]
    with pytest.raises(PacketError):
        rtcp_unmarshal(data, 5)


def test_reception_report_total_lost_overflow():
    report = SenderReport(ssrc=1, reports=[ReceptionReport(ssrc=2, total_lost=1 << 24)])
    with pytest.raises(PacketError):
        report.marshal()