"""Extended RTP sequence number tracking and generation."""

from __future__ import annotations

import random
from dataclasses import dataclass

MAX_MISORDER = 100
MAX_DROPOUT = 3000
MAX_SEQ_NUM = 65535


class SequenceError(Exception):
    """Base class for sequence number problems."""


class SequenceOutOfOrder(SequenceError):
    """Packet arrived out of order."""


class SequenceBad(SequenceError):
    """Sequence number made a very large jump."""


class SequenceDuplicate(SequenceError):
    """Sequence number was seen already."""


@dataclass
class ExtendedSequenceNumber:
    """Highest sequence number with a wrap-around counter.

    Not thread safe; wrap it in a lock if shared.
    """

    seq_num: int = 0
    wrap_around_count: int = 0
    bad_seq: int = 0

    def init_seq(self, seq: int) -> None:
        self.seq_num = seq & 0xFFFF
        self.bad_seq = MAX_SEQ_NUM
        self.wrap_around_count = 0

    def update_seq(self, seq: int) -> None:
        """Record a received sequence number; raise on a bad jump or duplicate."""
        seq &= 0xFFFF
        max_seq = self.seq_num
        udelta = (seq - max_seq) & 0xFFFF

        if udelta < MAX_DROPOUT:
            if seq < max_seq:
                self.wrap_around_count = (self.wrap_around_count + 1) & 0xFFFF
            self.seq_num = seq
            return

        if udelta <= MAX_SEQ_NUM - MAX_MISORDER:
            if seq == self.bad_seq:
                self.init_seq(seq)
                return
            self.bad_seq = (seq + 1) & 0xFFFF
            raise SequenceBad("bad sequence")

        raise SequenceDuplicate("sequence duplicate")

    def read_extended_seq(self) -> int:
        return self.seq_num + (MAX_SEQ_NUM + 1) * self.wrap_around_count

    def next_seq_number(self) -> int:
        self.seq_num = (self.seq_num + 1) & 0xFFFF
        if self.seq_num == 0:
            self.wrap_around_count = (self.wrap_around_count + 1) & 0xFFFF
        return self.seq_num


def new_sequencer() -> ExtendedSequenceNumber:
    """Return a sequencer starting at a random sequence number."""
    sn = ExtendedSequenceNumber()
    sn.init_seq(random.getrandbits(16))
    return sn