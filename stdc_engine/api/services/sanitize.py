"""Strip markup from submitted text before it is validated or stored."""
from __future__ import annotations

import html
from html.parser import HTMLParser
from typing import List

# Elements whose body is never user-visible text.
_DROP_CONTENT = frozenset({"script", "style", "iframe", "object", "embed", "template", "noscript"})


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _DROP_CONTENT:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in _DROP_CONTENT and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            # Re-encode so decoded entities never turn back into markup.
            self._parts.append(html.escape(data, quote=False))

    def text(self) -> str:
        return "".join(self._parts)


def sanitize_text(raw: str) -> str:
    """Return *raw* with HTML tags, comments and script/style bodies removed, trimmed.

    Text is serialized the way a browser would: ``&``, ``<`` and ``>`` come
    back entity-encoded, so ``&lt;script&gt;`` stays inert.
    """
    parser = _TextExtractor()
    parser.feed(raw)
    parser.close()
    return parser.text().strip()
