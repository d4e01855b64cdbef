import pytest

from packet_pipeline.intake import LineFramer


def test_lines_split_across_chunks():
    fr = LineFramer("\r\n")
    assert fr.feed(b"12.") == []
    assert fr.feed(b"5\r") == []
    assert fr.feed(b"\n13.0\r\n14") == ["12.5", "13.0"]
    assert fr.flush() == ["14"]
    assert fr.flush() == []


def test_lf_framer_keeps_carriage_returns():
    fr = LineFramer("\n")
    assert fr.feed(b"a\r\nb\n") == ["a\r", "b"]


def test_empty_lines_are_kept():
    assert LineFramer("\n").feed(b"\n\nx\n") == ["", "", "x"]


def test_overlong_line_is_discarded_up_to_next_delimiter():
    fr = LineFramer("\n", max_line_bytes=4)
    assert fr.feed(b"abcdefgh") == []
    assert fr.feed(b"ijk\nok\n") == ["ok"]
    assert fr.overflows == 1


def test_overlong_complete_line_is_dropped():
    fr = LineFramer("\n", max_line_bytes=3)
    assert fr.feed(b"toolong\nok\n") == ["ok"]
    assert fr.overflows == 1


def test_invalid_utf8_is_replaced():
    assert LineFramer("\n").feed(b"\xffok\n") == ["�ok"]


def test_empty_delimiter_rejected():
    with pytest.raises(ValueError):
        LineFramer("")
