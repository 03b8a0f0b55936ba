"""SRTP protection profile names as used in SDP crypto attributes."""

from __future__ import annotations

from enum import IntEnum


class ProtectionProfile(IntEnum):
    """SRTP protection profiles; ``UNSET`` marks an unknown name."""

    UNSET = 0x0000
    AES128_CM_HMAC_SHA1_80 = 0x0001
    AES128_CM_HMAC_SHA1_32 = 0x0002
    AES256_CM_HMAC_SHA1_80 = 0x0003
    AES256_CM_HMAC_SHA1_32 = 0x0004
    NULL_HMAC_SHA1_80 = 0x0005
    NULL_HMAC_SHA1_32 = 0x0006
    AEAD_AES_128_GCM = 0x0007
    AEAD_AES_256_GCM = 0x0008


SRTP_AES128_CM_HMAC_SHA1_80 = int(ProtectionProfile.AES128_CM_HMAC_SHA1_80)
SRTP_AES256_CM_HMAC_SHA1_80 = int(ProtectionProfile.AES256_CM_HMAC_SHA1_80)

_SDP_NAMES = {
    ProtectionProfile.AES128_CM_HMAC_SHA1_80: "AES_CM_128_HMAC_SHA1_80",
    ProtectionProfile.AES256_CM_HMAC_SHA1_80: "AES_CM_256_HMAC_SHA1_80",
    ProtectionProfile.NULL_HMAC_SHA1_80: "NULL_HMAC_SHA1_80",
}
_BY_NAME = {name: profile for profile, name in _SDP_NAMES.items()}


def profile_string(profile: ProtectionProfile) -> str:
    """Return the SDP crypto-suite name of ``profile``."""
    profile = ProtectionProfile(profile)
    return _SDP_NAMES.get(profile, profile.name)


def profile_parse(alg: str) -> ProtectionProfile:
    """Return the profile for an SDP crypto-suite name, or ``UNSET``."""
    return _BY_NAME.get(alg, ProtectionProfile.UNSET)