"""RTP/RTCP packets, session statistics, DTMF detection and audio helpers for VoIP."""

__version__ = "0.1.0"