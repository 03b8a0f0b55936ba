"""Lenient parsing of SDP session descriptions."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class SDPError(ValueError):
    """Raised when an SDP body or one of its fields cannot be interpreted."""


def _atoi(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


@dataclass
class MediaDescription:
    """``m=<media> <port>/<number of ports> <proto> <fmt> ...``"""

    media_type: str = ""
    port: int = 0
    port_numbers: int = 0
    proto: str = ""
    formats: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        ports = str(self.port)
        if self.port_numbers > 0:
            ports += f"/{self.port_numbers}"
        return f"m={self.media_type} {ports} {self.proto} {' '.join(self.formats)}"


@dataclass
class ConnectionInformation:
    """``c=<nettype> <addrtype> <connection-address>``"""

    network_type: str = ""
    address_type: str = ""
    ip: Optional[IPAddress] = None
    ttl: int = 0
    addr_range: int = 0


def _parse_ip(text: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


class SessionDescription(dict):
    """Mapping of SDP line type to all values seen for it, in order."""

    def values(self, key: str) -> list[str]:  # type: ignore[override]
        return self.get(key, [])

    def value(self, key: str) -> str:
        values = self.values(key)
        return values[0] if values else ""

    def _find_media(self, media_type: str) -> Optional[int]:
        for index, val in enumerate(self.values("m")):
            ind = val.find(" ")
            if ind < 1:
                continue
            if val[:ind] == media_type:
                return index
        return None

    def media_description(self, media_type: str) -> MediaDescription:
        index = self._find_media(media_type)
        if index is None:
            raise SDPError(f"Media not found for {media_type!r}")
        fields = self.values("m")[index].split()
        if len(fields) < 4:
            raise SDPError("Not enough fields in media description")

        ports = fields[1].split("/")
        return MediaDescription(
            media_type=fields[0],
            port=_atoi(ports[0]),
            port_numbers=_atoi(ports[1]) if len(ports) > 1 else 0,
            proto=fields[2],
            formats=fields[3:],
        )

    def media_attributes(self, media_type: str) -> list[str]:
        """Return the attributes for a media type, or an empty list.

        Attributes are not tracked per media section; all ``a=`` values
        are returned when the media type is present.
        """
        if self._find_media(media_type) is None:
            return []
        return list(self.values("a"))

    def connection_information(self) -> ConnectionInformation:
        v = self.value("c")
        if not v:
            raise SDPError("Connection information does not exists")
        fields = v.split()
        if len(fields) < 3:
            raise SDPError(f"sdp - not enough fields in c={v}")

        ci = ConnectionInformation(network_type=fields[0], address_type=fields[1])
        addr = fields[2].split("/")
        ip = _parse_ip(addr[0])

        if ci.address_type == "IP4":
            if isinstance(ip, ipaddress.IPv6Address):
                ip = ip.ipv4_mapped
            if ip is None:
                raise SDPError(f"sdp - failed to convert to IP4 c={v}")
        elif ci.address_type == "IP6":
            if ip is None:
                raise SDPError(f"sdp - failed to convert to IP6 c={v}")
        ci.ip = ip

        if len(addr) > 1:
            ci.ttl = _atoi(addr[1])
        if len(addr) > 2:
            ci.addr_range = _atoi(addr[2])
        return ci


def unmarshal(
    data: Union[bytes, str], sd: Optional[SessionDescription] = None
) -> SessionDescription:
    """Parse ``type=value`` lines into ``sd`` without validating values.

    Only newline-terminated lines are taken; a trailing line without a
    newline is ignored. CRLF endings are accepted.
    """
    if sd is None:
        sd = SessionDescription()
    text = data.decode() if isinstance(data, (bytes, bytearray)) else data

    lines = text.split("\n")
    for line in lines[:-1]:
        if line.endswith("\r"):
            line = line[:-1]
        if len(line) < 2:
            continue
        ind = line.find("=")
        if ind < 1:
            raise SDPError(f"Not a type=value line found. line={line!r}")
        sd.setdefault(line[:ind], []).append(line[ind + 1 :])
    return sd