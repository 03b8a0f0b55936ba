import pytest

from rtpmedia.sdp.formats import (
    FORMAT_TYPE_ALAW,
    FORMAT_TYPE_OPUS,
    FORMAT_TYPE_TELEPHONE_EVENT,
    FORMAT_TYPE_ULAW,
    Formats,
    VideoFormats,
    format_numeric,
)


def test_to_numeric_preserves_order():
    fmts = Formats(["8", "0", "101"])
    assert fmts.to_numeric() == [8, 0, 101]


def test_to_numeric_rejects_non_numbers():
    with pytest.raises(ValueError):
        Formats(["0", "abc"]).to_numeric()


def test_video_to_numeric():
    assert VideoFormats(["96", "97", "98"]).to_numeric() == [96, 97, 98]
    with pytest.raises(ValueError):
        VideoFormats(["x"]).to_numeric()


def test_audio_labels():
    fmts = Formats(
        [FORMAT_TYPE_ULAW, FORMAT_TYPE_ALAW, FORMAT_TYPE_OPUS, FORMAT_TYPE_TELEPHONE_EVENT]
    )
    assert str(fmts) == "0(ulaw),8(alaw),96(opus),101"


def test_video_labels():
    assert str(VideoFormats(["96", "97", "98", "120"])) == "96(H264),97(VP8),98(VP9),120"


def test_unknown_formats_are_plain_numbers():
    fmts = Formats(["3", "9"])
    assert str(fmts) == ",".join(fmts)


def test_empty_formats():
    assert str(Formats()) == ""
    assert Formats().to_numeric() == []


def test_format_numeric_round_trip():
    for n in range(256):
        assert format_numeric(str(n)) == n


def test_format_numeric_rejects_text():
    with pytest.raises(ValueError):
        format_numeric("opus")