from __future__ import annotations

import re
from pathlib import Path

import markdown

from .highlight import HighlightedFenceExtension

TAG_RE = re.compile(r"<[^>]+>")

MARKDOWN_EXTENSIONS = [
    "tables",
    "footnotes",
    "def_list",
    "md_in_html",
    "sane_lists",
    "pymdownx.tilde",
    "pymdownx.tasklist",
    "pymdownx.magiclink",
]

EXTENSION_CONFIGS = {
    "pymdownx.tilde": {"subscript": False},
    "pymdownx.tasklist": {"custom_checkbox": False},
}


def create_markdown() -> markdown.Markdown:
    # Markdown instances keep per-document state; build one per document.
    return markdown.Markdown(
        extensions=[HighlightedFenceExtension(), *MARKDOWN_EXTENSIONS],
        extension_configs=EXTENSION_CONFIGS,
        output_format="html",
    )


def render_markdown(text: str) -> str:
    return create_markdown().convert(text)


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = {"content", "navigation"}
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in late_keys:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
