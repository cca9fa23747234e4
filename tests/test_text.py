import pytest

from kaeva.services.text import MAX_CLAIM_LENGTH, is_question, normalize_claim


def test_normalize_collapses_whitespace():
    assert normalize_claim("  The earth\n\n is   flat \t") == "The earth is flat"


def test_normalize_caps_length():
    assert len(normalize_claim("a" * (MAX_CLAIM_LENGTH + 50))) == MAX_CLAIM_LENGTH


@pytest.mark.parametrize("value", [None, "", "   ", 42])
def test_normalize_empty_or_invalid(value):
    assert normalize_claim(value) == ""


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Is the earth flat", True),
        ("Did NASA fake the moon landing?", True),
        ("The moon landing was faked?", True),
        ("The earth is flat.", False),
        ("Whoever said that was wrong", False),
        ("", False),
        (None, False),
    ],
)
def test_is_question(text, expected):
    assert is_question(text) is expected
