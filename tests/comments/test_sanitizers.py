"""Tests for comment sanitizers."""

import pytest

from commentman.comments.sanitizers import sanitize_message, sanitize_text


class TestSanitizeText:
    """Tests for sanitize_text."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("plain", "plain"),
            ("a < b > c", "a &lt; b &gt; c"),
            ("Tom & Jerry", "Tom &amp; Jerry"),
            ("O'Brien", "O&#x27;Brien"),
            ('say "hi"', "say &quot;hi&quot;"),
            ("<img src=x onerror=alert(1)>", "&lt;img src=x onerror=alert(1)&gt;"),
        ],
    )
    def test_encodes_special_characters(self, raw: str, expected: str) -> None:
        """Special HTML characters should be encoded."""
        assert sanitize_text(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["<script>x</script>", "a & b", "&amp;", "already &lt;safe&gt;", "it's"],
    )
    def test_idempotent(self, raw: str) -> None:
        """Sanitizing sanitized text should change nothing."""
        once = sanitize_text(raw)

        assert sanitize_text(once) == once

    def test_none_passes_through(self) -> None:
        """Missing values stay missing."""
        assert sanitize_text(None) is None


class TestSanitizeMessage:
    """Tests for sanitize_message."""

    def test_escapes_everything_by_default(self) -> None:
        """Without a whitelist, formatting tags are escaped too."""
        assert sanitize_message("<b>hi</b>") == "&lt;b&gt;hi&lt;/b&gt;"

    def test_reenables_allowed_tags(self) -> None:
        """Whitelisted bare tags are kept as markup."""
        result = sanitize_message("<em>hi</em> <script>", allowed_tags=["em"])

        assert result == "<em>hi</em> &lt;script&gt;"

    def test_tags_with_attributes_stay_escaped(self) -> None:
        """Only the bare tag form is restored."""
        result = sanitize_message('<b onclick="x()">hi</b>', allowed_tags=["b"])

        assert result == "&lt;b onclick=&quot;x()&quot;&gt;hi</b>"

    def test_allowed_tags_idempotent(self) -> None:
        """Re-sanitizing with the same whitelist changes nothing."""
        once = sanitize_message("<code>x < 1</code>", allowed_tags=["code"])

        assert sanitize_message(once, allowed_tags=["code"]) == once

    def test_rejects_unknown_tags(self) -> None:
        """Only basic formatting tags can be whitelisted."""
        with pytest.raises(ValueError, match="script"):
            sanitize_message("<script>", allowed_tags=["script"])
