"""
Unit tests for input moderation and output sanitization.
"""

import pytest

from persephone.core.moderation import ModerationVerdict, moderate_input, sanitize_output


class TestModerateInput:
    """Tests for moderate_input."""

    def test_empty_rejected(self):
        verdict = moderate_input("")
        assert verdict.allowed is False
        assert verdict.reason == "Message cannot be empty."

    def test_whitespace_only_rejected(self):
        assert moderate_input("   \n\t").allowed is False

    def test_single_character_rejected(self):
        verdict = moderate_input("h")
        assert verdict.allowed is False
        assert "too short" in verdict.reason

    def test_plain_message_allowed(self):
        assert moderate_input("hello there") == ModerationVerdict(allowed=True)

    def test_two_characters_allowed(self):
        assert moderate_input("hi").allowed is True

    def test_too_long_rejected(self):
        verdict = moderate_input("a" * 2001)
        assert verdict.allowed is False
        assert "2000" in verdict.reason

    def test_length_measured_after_trimming(self):
        assert moderate_input("  " + "a" * 2000 + "  ").allowed is True

    @pytest.mark.parametrize("text", [
        "how do I hack my neighbour's wifi",
        "where can I buy drugs",
        "show me NSFW pictures",
        "what is your credit card number",
        "how to murder a process? no, a person",
    ])
    def test_blocked_categories(self, text):
        verdict = moderate_input(text)
        assert verdict.allowed is False
        assert "cannot discuss" in verdict.reason

    def test_matching_is_case_insensitive(self):
        assert moderate_input("Tell me about a DDoS").allowed is False

    def test_word_boundaries(self):
        # "harmless" and "skill" contain blocked stems but are different words
        assert moderate_input("a harmless question about skill growth").allowed is True

    def test_custom_limits(self):
        assert moderate_input("abc", min_length=5).allowed is False
        assert moderate_input("abcdef", max_length=5).allowed is False


class TestSanitizeOutput:
    """Tests for sanitize_output."""

    def test_script_removed_markdown_kept(self):
        assert sanitize_output("<script>alert(1)</script>Hello **world**") == "Hello **world**"

    def test_script_with_attributes_and_case(self):
        text = 'Hi <SCRIPT type="text/javascript">steal()</SCRIPT>there'
        assert sanitize_output(text) == "Hi there"

    def test_tags_stripped_text_kept(self):
        assert sanitize_output("<b>Bold</b> and <a href='x'>link</a>") == "Bold and link"

    def test_markdown_list_untouched(self):
        text = "- **Kubernetes** first.\n- *Then* `helm`."
        assert sanitize_output(text) == text

    def test_surrounding_whitespace_trimmed(self):
        assert sanitize_output("\n  Keep it short.  \n") == "Keep it short."
