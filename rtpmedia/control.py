"""Mute and stop control over an audio reader or writer."""

from __future__ import annotations

import threading
from typing import Any, Optional


class AudioControl:
    """Wraps a reader and/or writer so audio can be muted or stopped.

    Muted audio is replaced with zero bytes. Once stopped, reads and
    writes raise ``EOFError``.
    """

    def __init__(self, reader: Optional[Any] = None, writer: Optional[Any] = None) -> None:
        self.reader = reader
        self.writer = writer
        self._muted = threading.Event()
        self._stopped = threading.Event()

    @property
    def muted(self) -> bool:
        return self._muted.is_set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def read(self, size: int) -> bytes:
        if self._stopped.is_set():
            raise EOFError("audio stopped")
        if self.reader is None:
            raise RuntimeError("no reader set")
        data = self.reader.read(size)
        if self._muted.is_set():
            return bytes(len(data))
        return data

    def write(self, data: bytes) -> int:
        if self._stopped.is_set():
            raise EOFError("audio stopped")
        if self.writer is None:
            raise RuntimeError("no writer set")
        if self._muted.is_set():
            data = bytes(len(data))
        return self.writer.write(data)

    def mute(self, mute: bool) -> None:
        if mute:
            self._muted.set()
        else:
            self._muted.clear()

    def stop(self) -> None:
        """Make further reads and writes raise ``EOFError``."""
        self._stopped.set()