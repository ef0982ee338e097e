from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Collection, Iterable, Optional

from .content import CROSS_REFERENCE_RE, cross_reference_text, resolve_cross_reference
from .slugs import is_attachment
from .utils import normalize_base_path

INTERNAL_HREF_RE = re.compile(r"href=\"(/[^\"]*)\"")
MARKDOWN_LINK_RE = re.compile(r"\[(?P<text>[^\]]+)\]\((?P<url>[^)\s]+)(?:\s+\"[^\"]*\")?\)")

MAX_SUGGESTIONS = 3


@dataclass
class BrokenLink:
    source_file: str
    link_url: str
    source_page: str = ""
    line_number: int = 0
    original_syntax: str = ""
    link_text: str = ""
    suggestions: list[str] = field(default_factory=list)


@dataclass
class _LinkSource:
    line_number: int
    original_syntax: str
    link_text: str


def extract_internal_links(html: str) -> list[str]:
    """Root-relative hrefs in document order, without duplicates, ``/`` or ``/#...``."""
    links = []
    seen = set()
    for match in INTERNAL_HREF_RE.finditer(html):
        link = html_lib.unescape(match.group(1))
        if link.startswith("//") or link == "/" or link.startswith("/#") or link in seen:
            continue
        seen.add(link)
        links.append(link)
    return links


def _path_part(link: str) -> str:
    return link.split("#", 1)[0].split("?", 1)[0]


def normalize_link(link: str) -> str:
    path = _path_part(link) or "/"
    last = path.rstrip("/").rsplit("/", 1)[-1]
    if not path.endswith("/") and "." not in last:
        path = f"{path}/"
    return path


def is_valid_link(link: str, valid_urls: Collection[str]) -> bool:
    normalized = normalize_link(link)
    if normalized in valid_urls:
        return True
    without_slash = normalized.rstrip("/") or "/"
    with_slash = normalized if normalized.endswith("/") else f"{normalized}/"
    return without_slash in valid_urls or with_slash in valid_urls


def find_similar_urls(broken_url: str, valid_urls: Iterable[str]) -> list[str]:
    broken = _path_part(broken_url).strip("/").lower()
    suggestions = []
    for url in sorted(valid_urls):
        valid = url.strip("/").lower()
        if not valid:
            continue
        if broken in valid or valid in broken:
            suggestions.append(url)
            if len(suggestions) >= MAX_SUGGESTIONS:
                break
    return suggestions


def _strip_base_path(link: str, base_path: str) -> str:
    if not base_path:
        return link
    if link == base_path:
        return "/"
    if link.startswith(f"{base_path}/"):
        return link[len(base_path) :]
    return link


def _link_sources(markdown_source: str, source_dir: str) -> dict[str, _LinkSource]:
    sources: dict[str, _LinkSource] = {}
    for number, line in enumerate(markdown_source.split("\n"), start=1):
        for match in CROSS_REFERENCE_RE.finditer(line):
            target = match.group("target").strip()
            text = (match.group("text") or "").strip() or cross_reference_text(target)
            info = _LinkSource(number, match.group(0), text)
            for url in {resolve_cross_reference(target, source_dir), resolve_cross_reference(target, "/")}:
                sources.setdefault(url, info)
        for match in MARKDOWN_LINK_RE.finditer(line):
            url = match.group("url")
            if url.startswith("/"):
                sources.setdefault(url, _LinkSource(number, match.group(0), match.group("text")))
    return sources


def validate_links(
    html: str,
    source_file: str,
    markdown_source: str,
    valid_urls: Collection[str],
    *,
    source_page: str = "",
    source_dir: Optional[str] = None,
    base_path: str = "",
) -> list[BrokenLink]:
    """Check every internal link in ``html`` against ``valid_urls``.

    Links to attachments are not checked. For each miss the markdown source
    is searched for the reference that produced it to recover its line,
    syntax and text, and up to three similar valid URLs are suggested.
    """
    base_path = normalize_base_path(base_path)
    sources: Optional[dict[str, _LinkSource]] = None
    broken = []
    for raw_link in extract_internal_links(html):
        link = _strip_base_path(raw_link, base_path)
        if link == "/" or link.startswith("/#"):
            continue
        if is_attachment(PurePosixPath(_path_part(link)).name):
            continue
        if is_valid_link(link, valid_urls):
            continue
        if sources is None:
            sources = _link_sources(markdown_source or "", source_dir or "/")
        info = sources.get(link) or sources.get(normalize_link(link))
        broken.append(
            BrokenLink(
                source_file=source_file,
                source_page=source_page,
                link_url=link,
                line_number=info.line_number if info else 0,
                original_syntax=info.original_syntax if info else "",
                link_text=info.link_text if info else "",
                suggestions=find_similar_urls(link, valid_urls),
            )
        )
    return broken


def format_broken_link(index: int, link: BrokenLink) -> list[str]:
    lines = [f"Link #{index}:"]
    if link.source_file:
        location = f"{link.source_file}:{link.line_number}" if link.line_number > 0 else link.source_file
        lines.append(f"  File: {location}")
    if link.original_syntax:
        lines.append(f"  Syntax: {link.original_syntax}")
    if link.link_text and link.link_text != link.link_url:
        lines.append(f"  Text: {link.link_text}")
    lines.append(f"  Broken URL: {link.link_url}")
    if link.suggestions:
        lines.append("  Suggestions:")
        lines.extend(f"    - {suggestion}" for suggestion in link.suggestions)
    return lines


def format_report(broken_links: list[BrokenLink]) -> str:
    blocks = ["\n".join(format_broken_link(i, link)) for i, link in enumerate(broken_links, start=1)]
    return "\n\n".join(blocks)
