import pytest

from rtpmedia.sequencer import (
    ExtendedSequenceNumber,
    SequenceBad,
    SequenceDuplicate,
    SequenceError,
    new_sequencer,
)


def test_extended_sequence_number_wrapping():
    real_seq = (1 << 16) - 1
    seq = ExtendedSequenceNumber(seq_num=real_seq)

    real_seq = (real_seq + 1) & 0xFFFF
    seq.update_seq(real_seq)

    assert seq.wrap_around_count == 1
    assert seq.read_extended_seq() == 1 << 16


def test_in_order_updates():
    seq = ExtendedSequenceNumber()
    seq.init_seq(10)
    for n in range(11, 20):
        seq.update_seq(n)
        assert seq.read_extended_seq() == n


def test_duplicate_raises():
    seq = ExtendedSequenceNumber()
    seq.init_seq(100)
    with pytest.raises(SequenceDuplicate):
        seq.update_seq(99)
    assert seq.read_extended_seq() == 100


def test_large_jump_then_resync():
    seq = ExtendedSequenceNumber()
    seq.init_seq(100)
    with pytest.raises(SequenceBad):
        seq.update_seq(10000)
    assert seq.bad_seq == 10001
    assert seq.read_extended_seq() == 100

    seq.update_seq(10001)
    assert seq.read_extended_seq() == 10001
    assert seq.wrap_around_count == 0


def test_errors_share_base_class():
    seq = ExtendedSequenceNumber()
    seq.init_seq(0)
    with pytest.raises(SequenceError):
        seq.update_seq(40000)


def test_next_seq_number_wraps():
    seq = ExtendedSequenceNumber()
    seq.init_seq(0xFFFE)
    assert seq.next_seq_number() == 0xFFFF
    assert seq.next_seq_number() == 0
    assert seq.wrap_around_count == 1
    assert seq.read_extended_seq() == 1 << 16


def test_init_seq_resets_wrap():
    seq = ExtendedSequenceNumber(seq_num=5, wrap_around_count=3)
    seq.init_seq(7)
    assert seq.read_extended_seq() == 7
    assert seq.bad_seq == 65535


def test_new_sequencer_is_initialised():
    seq = new_sequencer()
    assert 0 <= seq.seq_num <= 0xFFFF
    assert seq.wrap_around_count == 0
    assert seq.bad_seq == 65535
    start = seq.seq_num
    assert seq.next_seq_number() == (start + 1) & 0xFFFF