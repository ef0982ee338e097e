from __future__ import annotations

import datetime as dt
import hashlib
import re
import unicodedata
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Union

MARKDOWN_SUFFIXES = (".md", ".markdown")
INDEX_STEMS = {"index", "readme"}
ATTACHMENT_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp", ".ico", ".heic",
    ".pdf",
    ".mp3", ".mp4", ".wav", ".ogg", ".webm", ".mov",
    ".zip", ".docx", ".xlsx", ".pptx",
}

SEPARATOR_RUN_RE = re.compile(r"[\s_]+")
UNSAFE_RE = re.compile(r"[^a-z0-9-]")
HYPHEN_RUN_RE = re.compile(r"-{2,}")
DATE_PREFIX_RE = re.compile(r"^(?P<year>\d{4})[-_](?P<month>\d{2})[-_](?P<day>\d{2})[-_ ]\s*(?P<rest>.+)$")
NUMBER_PREFIX_RE = re.compile(r"^(?P<number>\d+)(?:\s*[-_]\s*|\.\s*|\s+)(?P<rest>\S.*)$")
WORD_SPLIT_RE = re.compile(r"[-_\s]+")


def _placeholder(text: str) -> str:
    if not text:
        return "page"
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:8]
    return f"page-{digest}"


def slugify(text: str, placeholder: Optional[str] = None) -> str:
    """Turn ``text`` into a lowercase, hyphenated, URL-safe segment.

    The result only contains ``[a-z0-9-]`` and never starts, ends or
    repeats hyphens, so ``slugify(slugify(x)) == slugify(x)``. When nothing
    survives, ``placeholder`` is returned, or a stable ``page-<hash>``
    derived from the input.
    """
    value = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    value = value.lower()
    value = SEPARATOR_RUN_RE.sub("-", value)
    value = UNSAFE_RE.sub("", value)
    value = HYPHEN_RUN_RE.sub("-", value).strip("-")
    if value:
        return value
    if placeholder is not None:
        return placeholder
    return _placeholder(text)


def strip_markdown_suffix(filename: str) -> str:
    lower = filename.lower()
    for suffix in MARKDOWN_SUFFIXES:
        if lower.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def is_markdown_file(filename: str) -> bool:
    return filename.lower().endswith(MARKDOWN_SUFFIXES)


def is_index_file(filename: str) -> bool:
    if not is_markdown_file(filename):
        return False
    return strip_markdown_suffix(filename).lower() in INDEX_STEMS


def is_hidden_name(name: str) -> bool:
    return name.startswith(".")


def is_attachment(filename: str) -> bool:
    return PurePosixPath(filename).suffix.lower() in ATTACHMENT_EXTENSIONS


def _is_year(number: str) -> bool:
    return len(number) == 4 and number[0] != "0"


def _split_date(stem: str) -> tuple[Optional[dt.date], str]:
    match = DATE_PREFIX_RE.match(stem)
    if not match:
        return None, stem
    try:
        date = dt.date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
    except ValueError:
        return None, stem
    return date, match.group("rest")


def _split_number(stem: str) -> tuple[Optional[int], str]:
    match = NUMBER_PREFIX_RE.match(stem)
    if not match or _is_year(match.group("number")):
        return None, stem
    return int(match.group("number")), match.group("rest")


def remove_leading_numbers(stem: str) -> str:
    _, rest = _split_date(stem)
    _, rest = _split_number(rest)
    return rest


def titleize(text: str) -> str:
    words = [word for word in WORD_SPLIT_RE.split(text) if word]
    return " ".join(word[0].upper() + word[1:] for word in words)


def segment_slug(name: str) -> str:
    """URL segment for one path component, with draft/date/number prefixes removed."""
    stem = strip_markdown_suffix(name).lstrip("_")
    return slugify(remove_leading_numbers(stem))


def slugify_path(path: str) -> str:
    parts = [part for part in path.replace("\\", "/").split("/") if part not in {"", "."}]
    return "/".join(segment_slug(part) for part in parts)


def attachment_slug(filename: str) -> str:
    path = PurePosixPath(filename)
    return f"{slugify(path.stem)}{path.suffix}"


@dataclass(frozen=True)
class FileMetadata:
    original_name: str
    date: dt.datetime
    has_date: bool
    number: Optional[int]
    slug: str
    display_name: str
    is_draft: bool


def extract_metadata(filename: str, mtime: Union[float, dt.datetime, None] = None) -> FileMetadata:
    """Parse draft marker, date prefix and ordering number out of a file or folder name.

    ``_`` marks a draft and is stripped first. ``YYYY-MM-DD-`` yields the
    date; without it the modification time is used. A following digit run
    and separator yields the ordering number, except that a four-digit
    year like ``2023`` is kept as part of the name.
    """
    stem = strip_markdown_suffix(filename)
    is_draft = stem.startswith("_")
    if is_draft:
        stem = stem[1:]

    prefix_date, rest = _split_date(stem)
    number, rest = _split_number(rest)

    if prefix_date is not None:
        date = dt.datetime.combine(prefix_date, dt.time())
    elif isinstance(mtime, dt.datetime):
        date = mtime
    elif mtime is not None:
        date = dt.datetime.fromtimestamp(mtime)
    else:
        date = dt.datetime.now()

    return FileMetadata(
        original_name=filename,
        date=date,
        has_date=prefix_date is not None,
        number=number,
        slug=slugify(rest),
        display_name=titleize(rest) or rest,
        is_draft=is_draft,
    )
