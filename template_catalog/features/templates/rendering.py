"""Text rendering for template titles and descriptions."""

import html
import re
from typing import Optional

import nh3

from template_catalog.core.config import Settings, settings
from template_catalog.models.template import TextFormat

PLUGINFILE_PLACEHOLDER = "@@PLUGINFILE@@/"

_MULTILANG_SPAN = r'<span(?:\s+lang="([a-zA-Z0-9_-]*)"|\s+class="multilang"){2}\s*>(.*?)</span>'
_MULTILANG_SPAN_RE = re.compile(_MULTILANG_SPAN, re.IGNORECASE | re.DOTALL)
_MULTILANG_GROUP_RE = re.compile(
    rf"{_MULTILANG_SPAN}(?:\s*{_MULTILANG_SPAN})*", re.IGNORECASE | re.DOTALL
)
_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_BLOCK_TAG_RE = re.compile(r"<(p|div|ul|ol|table|h[1-6]|blockquote|pre)\b", re.IGNORECASE)


class TextRenderer:
    def __init__(self, settings_obj: Optional[Settings] = None):
        cfg = settings_obj or settings
        self.base_url = cfg.BASE_URL.rstrip("/")
        self.context_id = cfg.SYSTEM_CONTEXT_ID
        self.component = cfg.PLUGIN_COMPONENT
        self.language = cfg.CURRENT_LANGUAGE

    def rewrite_pluginfile_urls(self, text: Optional[str], template_id: int, filearea: str = "description") -> str:
        """Replace embedded file placeholders with public file URLs."""
        if not text:
            return ""
        base = f"{self.base_url}/pluginfile.php/{self.context_id}/{self.component}/{filearea}/{template_id}/"
        return text.replace(PLUGINFILE_PLACEHOLDER, base)

    def sanitize(self, markup: str) -> str:
        """Strip script-capable markup using the nh3 allowlist."""
        return nh3.clean(markup)

    def render(self, text: Optional[str], fmt: int = TextFormat.HTML) -> str:
        """Render stored text to sanitized markup according to its format."""
        if not text:
            return ""
        if fmt == TextFormat.HTML:
            return self.sanitize(text)
        if fmt == TextFormat.AUTO:
            cleaned = self.sanitize(text)
            if _BLOCK_TAG_RE.search(cleaned):
                return cleaned
            return "<div class=\"text_to_html\">" + cleaned.replace("\n", "<br />\n") + "</div>"
        # Plain text, markdown (rendered as plain) and unknown formats
        escaped = html.escape(text)
        return "<div class=\"text_to_html\">" + escaped.replace("\n", "<br />\n") + "</div>"

    def _pick_language(self, match: "re.Match[str]") -> str:
        variants = _MULTILANG_SPAN_RE.findall(match.group(0))
        if not variants:
            return match.group(0)
        for lang, content in variants:
            if lang.lower() == self.language.lower():
                return content
        return variants[0][1]

    def format_string(self, text: Optional[str]) -> str:
        """Normalize a title for display.

        Multi-language span groups collapse to the current language (or the
        first variant), remaining tags are stripped and whitespace collapsed.
        """
        if not text:
            return ""
        text = _MULTILANG_GROUP_RE.sub(self._pick_language, text)
        text = _TAG_RE.sub("", text)
        text = html.unescape(text)
        return _WHITESPACE_RE.sub(" ", text).strip()
