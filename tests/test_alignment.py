import pytest

from kes.alignment import Alignment


@pytest.mark.parametrize(
    "alignment, text, length, formatted",
    [
        (Alignment.LEFT, "", 0, ""),
        (Alignment.LEFT, "123456", 0, ""),
        (Alignment.LEFT, "123456", 4, "123…"),
        (Alignment.LEFT, "123456 ", 4, "12… "),
        (Alignment.LEFT, "123456", 8, "123456  "),
        (Alignment.CENTER, "", 0, ""),
        (Alignment.CENTER, "123456", 0, ""),
        (Alignment.CENTER, "123456", 4, "123…"),
        (Alignment.CENTER, "123456 ", 4, "12… "),
        (Alignment.CENTER, "123456", 8, " 123456 "),
        (Alignment.RIGHT, "", 0, ""),
        (Alignment.RIGHT, "123456", 0, ""),
        (Alignment.RIGHT, "123456", 4, "123…"),
        (Alignment.RIGHT, "123456 ", 4, "12… "),
        (Alignment.RIGHT, "123456", 8, "  123456"),
    ],
)
def test_format(alignment, text, length, formatted):
    assert alignment.format(text, length) == formatted


def test_center_odd_padding_goes_to_the_end():
    assert Alignment.CENTER.format("ab", 5) == " ab  "


def test_truncate_to_one_character_has_no_ellipsis():
    assert Alignment.LEFT.format("abc", 1) == "a"


@pytest.mark.parametrize("name", ["LEFT", "CENTER", "RIGHT"])
@pytest.mark.parametrize("length", [0, 1, 2, 5, 10, 20])
def test_result_has_requested_length(name, length):
    formatted = Alignment[name].format("hello world", length)
    assert len(formatted) == length


def test_exact_length_is_unchanged():
    assert Alignment.RIGHT.format("abc", 3) == "abc"


def test_negative_length_raises():
    with pytest.raises(ValueError):
        Alignment.LEFT.format("abc", -1)