"""Tests for reserved-character escaping."""

import pytest

from serverquery_mcp.protocol.escaping import ESCAPE_MAP, escape, to_utf8, unescape


def test_escape_space_and_pipe():
    """Separators inside values must not survive unescaped."""
    assert escape("Default Channel|x") == "Default\\sChannel\\px"


def test_escape_backslash_first():
    """A literal backslash is doubled, not mistaken for an escape."""
    assert escape("a\\s") == "a\\\\s"
    assert unescape("a\\\\s") == "a\\s"


def test_escape_slash_and_controls():
    assert escape("a/b\tc\nd") == "a\\/b\\tc\\nd"


@pytest.mark.parametrize(
    "value",
    [
        "plain",
        "with space",
        "pipe|and/slash",
        "back\\slash",
        "semi;colon",
        "tab\tnew\nline\rbell\a",
        "\\s literal",
        "Grüße ✓",
    ],
)
def test_unescape_reverses_escape(value):
    assert unescape(escape(value)) == value


def test_escape_map_is_bijective():
    """Every reserved character has its own two-character sequence."""
    sequences = list(ESCAPE_MAP.values())
    assert len(set(sequences)) == len(sequences)
    assert all(len(seq) == 2 and seq.startswith("\\") for seq in sequences)


def test_unescape_leaves_unknown_sequences():
    assert unescape("a\\xb") == "a\\xb"


def test_escape_transcodes_bytes():
    assert escape("café bar".encode("utf-8")) == "café\\sbar"


def test_to_utf8_latin1_fallback():
    assert to_utf8(b"caf\xe9") == "café"
