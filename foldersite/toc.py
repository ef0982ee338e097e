from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass, field

from .render import TAG_RE, strip_tags

TOC_HEADING_RE = re.compile(
    r"<h(?P<level>[2-4])[^>]*\sid=\"(?P<id>[^\"]+)\"[^>]*>(?P<content>.*?)</h(?P=level)>",
    re.IGNORECASE | re.DOTALL,
)
CODE_RE = re.compile(r"<pre[^>]*>.*?</pre>|<code[^>]*>.*?</code>", re.IGNORECASE | re.DOTALL)
WORD_RE = re.compile(r"[^\W_]+")

MIN_TOC_ITEMS = 3
WORDS_PER_MINUTE = 225
CODE_WORDS_PER_MINUTE = 100


@dataclass
class TocItem:
    id: str
    text: str
    level: int
    children: list[TocItem] = field(default_factory=list)


@dataclass(frozen=True)
class ReadingTime:
    minutes: int
    words: int

    def __str__(self) -> str:
        return f"{self.minutes} min read"


def extract_toc(html: str, min_items: int = MIN_TOC_ITEMS) -> list[TocItem]:
    """Nest the anchored ``h2``-``h4`` headings of ``html``.

    A heading becomes a child of the closest earlier heading with a lower
    level. Pages with fewer than ``min_items`` headings get no contents.
    """
    if min_items <= 0:
        min_items = MIN_TOC_ITEMS
    matches = list(TOC_HEADING_RE.finditer(html))
    if len(matches) < min_items:
        return []

    items: list[TocItem] = []
    stack: list[TocItem] = []
    for match in matches:
        item = TocItem(
            id=match.group("id"),
            text=html_lib.unescape(strip_tags(match.group("content"))).strip(),
            level=int(match.group("level")),
        )
        while stack and stack[-1].level >= item.level:
            stack.pop()
        if stack:
            stack[-1].children.append(item)
        else:
            items.append(item)
        stack.append(item)
    return items


def _render_items(items: list[TocItem]) -> str:
    entries = []
    for item in items:
        nested = _render_items(item.children) if item.children else ""
        entries.append(
            f'<li><a href="#{html_lib.escape(item.id, quote=True)}">{html_lib.escape(item.text)}</a>{nested}</li>'
        )
    return f'<ul>{"".join(entries)}</ul>'


def render_toc(items: list[TocItem]) -> str:
    if not items:
        return ""
    return (
        '<nav class="toc" aria-label="Table of contents">'
        '<p class="toc-title">On this page</p>'
        f"{_render_items(items)}"
        "</nav>"
    )


def _count_words(fragment: str) -> int:
    return len(WORD_RE.findall(html_lib.unescape(TAG_RE.sub(" ", fragment))))


def reading_time(html: str) -> ReadingTime:
    """Estimate reading time: prose at 225 words a minute, code at 100.

    Rounded to the nearest minute, never less than one.
    """
    code_words = sum(_count_words(block) for block in CODE_RE.findall(html))
    prose_words = _count_words(CODE_RE.sub(" ", html))
    minutes = prose_words / WORDS_PER_MINUTE + code_words / CODE_WORDS_PER_MINUTE
    return ReadingTime(minutes=max(1, int(minutes + 0.5)), words=prose_words + code_words)
