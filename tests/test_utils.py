"""Tests for utils.py module."""

from galbot.utils import format_credits, sanitize_file_stem


class TestSanitizeFileStem:
    """Tests for sanitize_file_stem."""

    def test_replaces_whitespace_with_underscores(self):
        assert sanitize_file_stem("a cat  in\ta hat") == "a_cat_in_a_hat"

    def test_drops_punctuation(self):
        assert sanitize_file_stem("hello, world!?") == "hello_world"

    def test_keeps_hyphens(self):
        assert sanitize_file_stem("sci-fi city") == "sci-fi_city"

    def test_truncates(self):
        assert sanitize_file_stem("x" * 300) == "x" * 100
        assert sanitize_file_stem("abcdef", max_length=3) == "abc"

    def test_empty_falls_back(self):
        assert sanitize_file_stem("") == "image"
        assert sanitize_file_stem("?!/") == "image"


class TestFormatCredits:
    def test_singular(self):
        assert format_credits(1) == "1 credit"

    def test_plural(self):
        assert format_credits(0) == "0 credits"
        assert format_credits(250) == "250 credits"
