from __future__ import annotations

import html
import logging
import re

import yaml

from .slugs import attachment_slug, is_attachment, segment_slug, slugify, strip_markdown_suffix

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
INLINE_CODE_RE = re.compile(r"(`+)(?:.+?)\1")
CALLOUT_START_RE = re.compile(r"^:::(?P<type>note|tip|warning|danger|info)(?:[ \t]+(?P<title>.*\S))?[ \t]*$")
CROSS_REFERENCE_RE = re.compile(r"!?\[\[(?P<target>[^\]|]+)(?:\|(?P<text>[^\]]+))?\]\]")
H1_RE = re.compile(r"^#[ \t]+(?P<title>.+?)(?:[ \t]+#+)?[ \t]*$")
LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
INLINE_MARKUP_RE = re.compile(r"[*_~`]")
FRAGMENT_ID_RE = re.compile(r"^[a-z0-9-]+$")

CALLOUT_ICONS = {
    "note": '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><circle cx="12" cy="12" r="10"></circle><line x1="12" y1="16" x2="12" y2="12"></line><line x1="12" y1="8" x2="12.01" y2="8"></line></svg>',
    "tip": '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><path d="M9 18h6"></path><path d="M10 22h4"></path><path d="M15.09 14c.18-.98.65-1.74 1.41-2.5A4.65 4.65 0 0 0 18 8 6 6 0 0 0 6 8c0 1 .23 2.23 1.5 3.5A4.61 4.61 0 0 1 8.91 14"></path></svg>',
    "warning": '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><path d="M10.29 3.86L1.82 18a2 2 0 0 0 1.71 3h16.94a2 2 0 0 0 1.71-3L13.71 3.86a2 2 0 0 0-3.42 0z"></path><line x1="12" y1="9" x2="12" y2="13"></line><line x1="12" y1="17" x2="12.01" y2="17"></line></svg>',
    "danger": '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><polygon points="7.86 2 16.14 2 22 7.86 22 16.14 16.14 22 7.86 22 2 16.14 2 7.86 7.86 2"></polygon><line x1="12" y1="8" x2="12" y2="12"></line><line x1="12" y1="16" x2="12.01" y2="16"></line></svg>',
    "info": '<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><circle cx="12" cy="12" r="10"></circle><line x1="12" y1="16" x2="12" y2="12"></line><line x1="12" y1="8" x2="12.01" y2="8"></line></svg>',
}


def _split_front_matter(text: str) -> tuple[list[str], list[str]] | None:
    lines = text.split("\n")
    if not lines or lines[0].rstrip() != "---":
        return None
    for i in range(1, len(lines)):
        if lines[i].rstrip() == "---":
            return lines[1:i], lines[i + 1 :]
    return None


def strip_front_matter(text: str) -> str:
    """Drop a leading ``---`` block and the blank lines after it.

    Without a closing delimiter the text is returned untouched.
    """
    clean_text = text.lstrip("\ufeff")
    parts = _split_front_matter(clean_text)
    if parts is None:
        if clean_text.startswith("---"):
            logger.debug("Front matter is not closed; leaving text as-is")
        return clean_text
    _, body = parts
    while body and not body[0].strip():
        body = body[1:]
    return "\n".join(body)


def parse_front_matter(text: str) -> tuple[dict, str]:
    clean_text = text.lstrip("\ufeff")
    parts = _split_front_matter(clean_text)
    if parts is None:
        return {}, clean_text
    block, _ = parts
    try:
        meta = yaml.safe_load("\n".join(block))
    except yaml.YAMLError as exc:
        logger.warning("Ignoring unparseable front matter: %s", exc)
        meta = None
    if not isinstance(meta, dict):
        meta = {}
    return meta, strip_front_matter(clean_text)


def extract_title(text: str) -> str:
    """Return the first-level heading if it is the first non-blank line, else ``""``."""
    body = strip_front_matter(text)
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        match = H1_RE.match(stripped)
        if not match:
            return ""
        title = LINK_RE.sub(r"\1", match.group("title"))
        return INLINE_MARKUP_RE.sub("", title).strip()
    return ""


def render_callout(callout_type: str, title: str, lines: list[str]) -> str:
    icon = CALLOUT_ICONS.get(callout_type, CALLOUT_ICONS["info"])
    content = "\n".join(lines)
    return (
        f'\n<div class="admonition admonition-{callout_type}" role="note" markdown="1">\n'
        '<div class="admonition-heading">'
        f'<span class="admonition-icon">{icon}</span>'
        f'<span class="admonition-title">{html.escape(title)}</span>'
        "</div>\n"
        '<div class="admonition-content" markdown="1">\n\n'
        f"{content}\n\n"
        "</div>\n"
        "</div>\n"
    )


def expand_callouts(text: str) -> str:
    out: list[str] = []
    callout_type = ""
    title = ""
    captured: list[str] = []
    in_callout = False
    in_fence = False
    fence_marker = ""

    for line in text.split("\n"):
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker[0] * 3
            elif marker.startswith(fence_marker):
                in_fence = False
                fence_marker = ""
        elif not in_fence:
            if in_callout and line.strip() == ":::":
                out.append(render_callout(callout_type, title, captured))
                in_callout = False
                captured = []
                continue
            start = CALLOUT_START_RE.match(line) if not in_callout else None
            if start:
                in_callout = True
                callout_type = start.group("type")
                title = start.group("title") or callout_type.capitalize()
                captured = []
                continue
        if in_callout:
            captured.append(line)
        else:
            out.append(line)

    if in_callout:
        logger.debug("Callout '%s' is not closed; using the remaining lines", callout_type)
        out.append(render_callout(callout_type, title, captured))
    return "\n".join(out)


def _split_fragment(target: str) -> tuple[str, str]:
    if "#" not in target:
        return target, ""
    path, fragment = target.split("#", 1)
    fragment = fragment.strip()
    if not fragment:
        return path, ""
    if FRAGMENT_ID_RE.match(fragment):
        return path, f"#{fragment}"
    return path, f"#{slugify(fragment, placeholder='')}"


def resolve_cross_reference(target: str, source_dir: str = "/") -> str:
    """Resolve a ``[[target]]`` reference to a site URL.

    ``source_dir`` is the URL of the folder holding the referencing
    document (``/`` or ``/guides/``). Targets with a ``/`` resolve from
    the site root, bare names resolve next to the current document.
    """
    path, fragment = _split_fragment(target.strip())
    path = strip_markdown_suffix(path.strip())
    explicit = "/" in path
    segments = [segment.strip() for segment in path.split("/") if segment.strip() not in {"", ".", ".."}]
    if not segments:
        return fragment or "/"

    attachment = is_attachment(segments[-1])
    if attachment:
        parts = [segment_slug(segment) for segment in segments[:-1]] + [attachment_slug(segments[-1])]
    else:
        parts = [segment_slug(segment) for segment in segments]
    parts = [part for part in parts if part]

    if not explicit:
        parts = [part for part in source_dir.strip("/").split("/") if part] + parts

    if attachment:
        return "/" + "/".join(parts) + fragment

    if parts and parts[-1] in {"index", "readme"}:
        parts = parts[:-1]
    if not parts:
        return "/" + fragment
    return "/" + "/".join(parts) + "/" + fragment


def cross_reference_text(target: str) -> str:
    path = target.strip()
    if "#" in path:
        head, fragment = path.split("#", 1)
        path = f"{strip_markdown_suffix(head)}#{fragment}"
    else:
        path = strip_markdown_suffix(path)
    segments = [segment for segment in path.split("/") if segment.strip()]
    return segments[-1].strip() if segments else path


def _convert_line(line: str, source_dir: str) -> str:
    def repl(match: re.Match) -> str:
        target = match.group("target")
        text = (match.group("text") or "").strip() or cross_reference_text(target)
        return f"[{text}]({resolve_cross_reference(target, source_dir)})"

    pieces = []
    last = 0
    for code in INLINE_CODE_RE.finditer(line):
        pieces.append(CROSS_REFERENCE_RE.sub(repl, line[last : code.start()]))
        pieces.append(code.group(0))
        last = code.end()
    pieces.append(CROSS_REFERENCE_RE.sub(repl, line[last:]))
    return "".join(pieces)


def convert_cross_references(text: str, source_dir: str = "/") -> str:
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in text.split("\n"):
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker[0] * 3
            elif marker.startswith(fence_marker):
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        out.append(line if in_fence else _convert_line(line, source_dir))
    return "\n".join(out)


def preprocess(text: str, source_dir: str = "/") -> str:
    body = strip_front_matter(text)
    body = expand_callouts(body)
    return convert_cross_references(body, source_dir)
