from __future__ import annotations

import html as html_lib
import re
from urllib.parse import urlsplit

from .highlight import parse_code_info
from .render import strip_tags
from .slugs import slugify
from .utils import host_from_url, normalize_base_path

HEADING_RE = re.compile(r"<(?P<tag>h[1-6])(?P<attrs>[^>]*)>(?P<content>.*?)</(?P=tag)>", re.IGNORECASE | re.DOTALL)
ID_ATTR_RE = re.compile(r"\s+id=\"[^\"]*\"", re.IGNORECASE)
INNER_TAG_RE = re.compile(r"<(/?)([A-Za-z][\w-]*)([^<>]*)>")
URL_ATTR_RE = re.compile(r"(?P<name>\s(?:href|src|poster|data-[\w-]+))=\"(?P<value>[^\"]*)\"", re.IGNORECASE)
SRCSET_RE = re.compile(r"(?P<name>\ssrcset)=\"(?P<value>[^\"]*)\"", re.IGNORECASE)
LINK_RE = re.compile(r"<a\s+(?P<before>[^>]*?)href=\"(?P<href>[^\"]*)\"(?P<after>[^>]*)>(?P<content>.*?)</a>", re.IGNORECASE | re.DOTALL)
PRE_CODE_RE = re.compile(r"<pre(?P<pre>[^>]*)><code(?P<code_attrs>[^>]*)>(?P<code>.*?)</code></pre>", re.DOTALL)
DATA_INFO_RE = re.compile(r"\sdata-info=\"(?P<info>[^\"]*)\"")

INLINE_TAGS = {
    "a", "abbr", "b", "br", "code", "del", "em", "i", "img", "kbd", "mark",
    "s", "small", "span", "strong", "sub", "sup",
}

ANCHOR_ICON = '<svg class="anchor-icon" xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><path d="M10 13a5 5 0 0 0 7.54.54l3-3a5 5 0 0 0-7.07-7.07l-1.72 1.71"></path><path d="M14 11a5 5 0 0 0-7.54-.54l-3 3a5 5 0 0 0 7.07 7.07l1.71-1.71"></path></svg>'
EXTERNAL_ICON = '<svg class="external-icon" aria-hidden="true" xmlns="http://www.w3.org/2000/svg" width="12" height="12" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><path d="M18 13v6a2 2 0 0 1-2 2H5a2 2 0 0 1-2-2V8a2 2 0 0 1 2-2h6"></path><polyline points="15 3 21 3 21 9"></polyline><line x1="10" y1="14" x2="21" y2="3"></line></svg>'
COPY_ICON = '<svg class="copy-icon" xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><rect x="9" y="9" width="13" height="13" rx="2" ry="2"></rect><path d="M5 15H4a2 2 0 0 1-2-2V4a2 2 0 0 1 2-2h9a2 2 0 0 1 2 2v1"></path></svg>'
CHECK_ICON = '<svg class="check-icon" xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><polyline points="20 6 9 17 4 12"></polyline></svg>'


def escape_unknown_tags(content: str) -> str:
    def repl(match: re.Match) -> str:
        if match.group(2).lower() in INLINE_TAGS:
            return match.group(0)
        return html_lib.escape(match.group(0), quote=False)

    return INNER_TAG_RE.sub(repl, content)


def heading_text(content: str) -> str:
    return html_lib.unescape(strip_tags(content)).strip()


def add_heading_anchors(html: str) -> str:
    """Give every heading a unique id and a leading self-link.

    Repeated headings get ``-1``, ``-2`` suffixes in document order. A
    heading whose text has no usable characters becomes ``heading``.
    """
    used: set[str] = set()

    def unique(base: str) -> str:
        if base not in used:
            used.add(base)
            return base
        n = 1
        while f"{base}-{n}" in used:
            n += 1
        candidate = f"{base}-{n}"
        used.add(candidate)
        return candidate

    def repl(match: re.Match) -> str:
        tag = match.group("tag")
        attrs = ID_ATTR_RE.sub("", match.group("attrs"))
        content = escape_unknown_tags(match.group("content"))
        text = heading_text(match.group("content"))
        anchor_id = unique(slugify(text, placeholder="heading"))
        label = html_lib.escape(f"Link to {text} section", quote=True)
        return (
            f'<{tag} id="{anchor_id}"{attrs}>'
            f'<a href="#{anchor_id}" class="heading-anchor" aria-label="{label}">{ANCHOR_ICON}</a>'
            f"{content}</{tag}>"
        )

    return HEADING_RE.sub(repl, html)


def _is_root_relative(value: str) -> bool:
    return value.startswith("/") and not value.startswith("//")


def prefix_internal_links(html: str, base_path: str) -> str:
    base_path = normalize_base_path(base_path)
    if not base_path:
        return html

    def url_repl(match: re.Match) -> str:
        value = match.group("value")
        if not _is_root_relative(value):
            return match.group(0)
        return f'{match.group("name")}="{base_path}{value}"'

    def srcset_repl(match: re.Match) -> str:
        candidates = []
        for candidate in match.group("value").split(","):
            candidate = candidate.strip()
            if not candidate:
                continue
            url, _, descriptor = candidate.partition(" ")
            if _is_root_relative(url):
                url = f"{base_path}{url}"
            candidates.append(f"{url} {descriptor.strip()}".strip())
        return f'{match.group("name")}="{", ".join(candidates)}"'

    html = URL_ATTR_RE.sub(url_repl, html)
    return SRCSET_RE.sub(srcset_repl, html)


def is_external_url(href: str, site_host: str) -> bool:
    if not href or href.startswith(("#", "/", "mailto:", "tel:", "javascript:")):
        return False
    parts = urlsplit(href)
    if parts.scheme.lower() not in {"http", "https"} or not parts.hostname:
        return False
    host = parts.hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    return not site_host or host != site_host


def decorate_external_links(html: str, site_url: str = "") -> str:
    site_host = host_from_url(site_url)

    def repl(match: re.Match) -> str:
        href = match.group("href")
        content = match.group("content")
        if not is_external_url(html_lib.unescape(href), site_host):
            return match.group(0)
        if "<img" in content.lower():
            return match.group(0)
        attrs = f'{match.group("before")}href="{href}"{match.group("after")}'
        lowered = attrs.lower()
        if "target=" not in lowered:
            attrs += ' target="_blank"'
        if "rel=" not in lowered:
            attrs += ' rel="noopener noreferrer"'
        return f'<a {attrs}>{content}{EXTERNAL_ICON}<span class="sr-only">(opens in new tab)</span></a>'

    return LINK_RE.sub(repl, html)


def parse_line_spec(spec: str) -> list[int]:
    """``"3,5-7"`` -> ``[3, 5, 6, 7]``. Invalid parts and reversed ranges are ignored."""
    lines: set[int] = set()
    for part in (spec or "").split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_text, _, end_text = part.partition("-")
            try:
                start, end = int(start_text.strip()), int(end_text.strip())
            except ValueError:
                continue
            if start <= end:
                lines.update(range(start, end + 1))
        else:
            try:
                lines.add(int(part))
            except ValueError:
                continue
    return sorted(line for line in lines if line > 0)


def apply_line_highlighting(code: str, highlight_lines: list[int]) -> str:
    if not highlight_lines:
        return code
    marked = set(highlight_lines)
    out = []
    for number, line in enumerate(code.rstrip("\n").split("\n"), start=1):
        css = "line highlight" if number in marked else "line"
        out.append(f'<span class="{css}">{line}</span>')
    return "\n".join(out) + "\n"


def wrap_code_blocks(html: str) -> str:
    def repl(match: re.Match) -> str:
        code_attrs = match.group("code_attrs")
        code = match.group("code")
        info_match = DATA_INFO_RE.search(code_attrs)
        if info_match:
            _, spec = parse_code_info(html_lib.unescape(info_match.group("info")))
            code = apply_line_highlighting(code, parse_line_spec(spec))
            code_attrs = DATA_INFO_RE.sub("", code_attrs)
        return (
            '<div class="code-block">\n'
            '  <button class="copy-button" aria-label="Copy code to clipboard">\n'
            f"    {COPY_ICON}\n"
            f"    {CHECK_ICON}\n"
            '    <span class="copy-text">Copy</span>\n'
            "  </button>\n"
            f'  <pre{match.group("pre")}><code{code_attrs}>{code}</code></pre>\n'
            "</div>"
        )

    return PRE_CODE_RE.sub(repl, html)


def enhance_html(html: str, base_path: str = "", site_url: str = "") -> str:
    html = add_heading_anchors(html)
    html = prefix_internal_links(html, base_path)
    html = decorate_external_links(html, site_url)
    return wrap_code_blocks(html)
