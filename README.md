# rtpmedia

Building blocks for VoIP media handling, using only the standard library.

- **SDP** – `rtpmedia.sdp.description` parses session descriptions
  (`unmarshal`, `SessionDescription`, `MediaDescription`,
  `ConnectionInformation`); `rtpmedia.sdp.formats` renders payload format
  lists (`Formats`, `VideoFormats`, `format_numeric`);
  `rtpmedia.sdp.generate` builds a minimal audio offer (`generate_for_audio`,
  `Mode`).
- **RTP / RTCP packets** – `rtpmedia.packet` encodes and decodes RTP packets
  (`RTPHeader`, `RTPPacket`, `rtp_unmarshal`) and RTCP sender reports,
  receiver reports, source descriptions and goodbyes (`rtcp_unmarshal`,
  `rtcp_marshal`). Other RTCP types are kept as `RawRTCPPacket`.
- **Sequence numbers** – `rtpmedia.sequencer.ExtendedSequenceNumber` tracks
  wrap-around and raises `SequenceBad` or `SequenceDuplicate` on bad jumps
  and duplicates.
- **Sessions and statistics** – `rtpmedia.session.RTPSession` reads and writes
  RTP over a transport you supply, keeps `RTPReadStats` / `RTPWriteStats`
  (jitter, loss, round-trip time from `rtpmedia.stats`) and sends RTCP sender
  or receiver reports, either on demand (`write_rtcp`) or periodically
  (`monitor`, `monitor_background`).
- **Packetizing** – `rtpmedia.packet_writer.RTPPacketWriter` wraps audio
  frames into RTP packets paced by the frame clock;
  `rtpmedia.packet_reader.RTPPacketReader` returns payloads as a byte stream.
- **DTMF** – `rtpmedia.dtmf_reader.RTPDTMFReader` detects RFC 4733 telephone
  events (`dtmf_decode`, `dtmf_to_char`).
- **Helpers** – mute/stop wrapper `rtpmedia.control.AudioControl`; ringback
  tone generation and playback in `rtpmedia.ringtone`; NTP timestamps,
  `read_all`, `write_all`, `copy_with_buf` and `RTPWriterBuffer` in
  `rtpmedia.rtputil`; SRTP crypto-suite names in `rtpmedia.srtp`.

Readers in this package have `read(size) -> bytes` and end a stream with an
empty read or `EOFError`; writers have `write(data)`.

## Installation

```
pip install rtpmedia
```

## Examples

Parse an SDP body:

```python
from rtpmedia.sdp.description import unmarshal

sd = unmarshal(body_bytes)
md = sd.media_description("audio")
print(md.port, md.proto, md.formats)
print(sd.connection_information().ip)
```

Generate an audio offer:

```python
from rtpmedia.sdp.formats import Formats
from rtpmedia.sdp.generate import Mode, generate_for_audio

body = generate_for_audio("10.0.0.1", "10.0.0.1", 40000, Mode.SENDRECV, Formats(["0", "8", "101"]))
```

Packetize audio frames into RTP packets (each write waits one 20 ms frame):

```python
from rtpmedia.packet_writer import RTPPacketWriter
from rtpmedia.rtputil import RTPWriterBuffer, write_all

buffer = RTPWriterBuffer()
writer = RTPPacketWriter(buffer, payload_type=8, sample_rate=8000)
write_all(writer, bytes(4 * 160), 160)
assert len(buffer.packets) == 4
```

Track sequence numbers:

```python
from rtpmedia.sequencer import ExtendedSequenceNumber

seq = ExtendedSequenceNumber()
seq.init_seq(65535)
seq.update_seq(0)
assert seq.read_extended_seq() == 65536
```

Detect DTMF digits from telephone events:

```python
from rtpmedia.dtmf_reader import DTMFEvent, RTPDTMFReader

reader = RTPDTMFReader()
reader.process_dtmf_event(DTMFEvent(event=1, end_of_event=False, volume=10, duration=160))
reader.process_dtmf_event(DTMFEvent(event=1, end_of_event=True, volume=10, duration=800))
digit = reader.read_dtmf()  # "1"
```

## What it does not do

- No SIP signalling: there are no calls, dialogs or registrations.
- No network sockets: `RTPSession` works over a transport object you provide
  (see the `rtpmedia.session` module docstring for what it must offer).
- No audio codecs and no WAV or URL playback: payloads are passed through as
  bytes; `rtpmedia.ringtone` produces 16-bit PCM only.
- No SRTP encryption: `rtpmedia.srtp` only maps protection profiles to and
  from their SDP names.
- No command-line program.

## Running the tests

```
pip install -e .[test]
pytest
```