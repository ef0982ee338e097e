from __future__ import annotations

import html
import re

from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

FENCE_OPEN_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^`\n]*?)[ \t]*$")
LIST_ITEM_RE = re.compile(r"^(?P<marker>[ ]*(?:[-*+]|\d{1,9}[.)]))(?P<gap>[ ]+)\S")
CODE_INFO_RE = re.compile(r"^(?P<lang>[\w+#.-]*)\s*\{(?P<spec>[^}]*)\}$")


def parse_code_info(info: str) -> tuple[str, str]:
    """Split a fence info string into ``(language, line spec)``.

    ``"go {2,4-5}"`` gives ``("go", "2,4-5")``; ``"python"`` gives
    ``("python", "")``.
    """
    info = (info or "").strip()
    match = CODE_INFO_RE.match(info)
    if match:
        return match.group("lang"), match.group("spec").strip()
    parts = info.split()
    return (parts[0] if parts else ""), ""


def highlight_code(code: str, lang: str) -> str:
    try:
        lexer = get_lexer_by_name(lang) if lang else TextLexer()
    except ClassNotFound:
        lexer = TextLexer()
    formatter = HtmlFormatter(nowrap=True)
    return highlight(code, lexer, formatter).rstrip("\n")


def render_code_block(code: str, info: str) -> str:
    lang, _ = parse_code_info(info)
    attrs = ""
    if lang:
        safe_lang = html.escape(lang, quote=True)
        attrs += f' class="language-{safe_lang}" data-lang="{safe_lang}"'
    if info.strip():
        attrs += f' data-info="{html.escape(info.strip(), quote=True)}"'
    return f'<pre class="highlight"><code{attrs}>{highlight_code(code, lang)}\n</code></pre>'


def _is_closing_fence(line: str, fence: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(fence) and set(stripped) == {fence[0]}


def _indent_width(line: str) -> int:
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip(" "))


class HighlightedFencePreprocessor(Preprocessor):
    """Replace fenced code blocks with Pygments-highlighted HTML.

    The info string is kept on the ``<code>`` element as ``data-info`` so
    line highlighting can be applied after rendering. An unclosed fence runs
    to the end of the document. A fence indented four or more columns past
    the content of its enclosing list item is indented code and stays
    literal.
    """

    def run(self, lines: list[str]) -> list[str]:
        out: list[str] = []
        # content columns of the list items the current line may belong to
        containers: list[int] = []
        after_blank = True
        i = 0
        while i < len(lines):
            line = lines[i]
            if not line.strip():
                out.append(line)
                after_blank = True
                i += 1
                continue

            width = _indent_width(line)
            if after_blank:
                while containers and width < containers[-1]:
                    containers.pop()
            base = containers[-1] if containers else 0
            match = FENCE_OPEN_RE.match(line) if width - base < 4 else None
            if not match:
                item = LIST_ITEM_RE.match(line.expandtabs(4))
                if item and width - base < 4:
                    while containers and width < containers[-1]:
                        containers.pop()
                    containers.append(item.end() - 1)
                out.append(line)
                after_blank = False
                i += 1
                continue

            indent = match.group("indent")
            fence = match.group("fence")
            body: list[str] = []
            i += 1
            while i < len(lines):
                line = lines[i]
                i += 1
                if _is_closing_fence(line, fence):
                    break
                body.append(line[len(indent) :] if line.startswith(indent) else line.lstrip())

            block = render_code_block("\n".join(body), match.group("info"))
            placeholder = self.md.htmlStash.store(block)
            out.extend(["", f"{indent}{placeholder}", ""])
            after_blank = True
        return out


class HighlightedFenceExtension(Extension):
    def extendMarkdown(self, md):
        md.preprocessors.register(HighlightedFencePreprocessor(md), "highlighted_fence", 25)
