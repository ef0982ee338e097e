"""Tests for the HTML postprocessor."""

from __future__ import annotations

import re

import pytest

from foldersite.postprocess import (
    add_heading_anchors,
    apply_line_highlighting,
    decorate_external_links,
    enhance_html,
    parse_line_spec,
    prefix_internal_links,
    wrap_code_blocks,
)
from foldersite.render import render_markdown

ID_RE = re.compile(r'<h[1-6] id="([^"]+)"')


class TestHeadingAnchors:
    def test_duplicate_headings_get_suffixes(self) -> None:
        html = "<h2>Setup</h2><p>x</p><h2>Setup</h2><h3>Setup</h3>"
        assert ID_RE.findall(add_heading_anchors(html)) == ["setup", "setup-1", "setup-2"]

    def test_suffix_skips_taken_ids(self) -> None:
        html = "<h2>A 1</h2><h2>A</h2><h2>A</h2>"
        assert ID_RE.findall(add_heading_anchors(html)) == ["a-1", "a", "a-2"]

    def test_anchor_link_and_label(self) -> None:
        out = add_heading_anchors("<h2>Getting Started</h2>")
        assert out.startswith(
            '<h2 id="getting-started"><a href="#getting-started" class="heading-anchor" '
            'aria-label="Link to Getting Started section">'
        )
        assert out.endswith("</a>Getting Started</h2>")

    def test_existing_id_is_replaced(self) -> None:
        out = add_heading_anchors('<h1 id="old" class="title">New Name</h1>')
        assert 'id="old"' not in out
        assert out.startswith('<h1 id="new-name" class="title">')

    def test_inline_markup_is_kept_but_not_slugged(self) -> None:
        out = add_heading_anchors("<h2>Use <code>build()</code> &amp; <em>go</em></h2>")
        assert ID_RE.findall(out) == ["use-build-go"]
        assert "<code>build()</code>" in out
        assert "<em>go</em>" in out

    def test_unknown_tags_are_escaped(self) -> None:
        out = add_heading_anchors("<h2>List<T> type</h2>")
        assert "List&lt;T&gt; type" in out
        assert "<T>" not in out

    def test_empty_heading_gets_placeholder(self) -> None:
        out = add_heading_anchors("<h2>!!!</h2><h2>???</h2>")
        assert ID_RE.findall(out) == ["heading", "heading-1"]


class TestPrefixInternalLinks:
    def test_rewrites_root_relative_attributes(self) -> None:
        html = (
            '<a href="/guides/">g</a><img src="/img/a.png">'
            '<video poster="/p.jpg"></video><div data-target="/x/"></div>'
        )
        out = prefix_internal_links(html, "/docs")
        assert 'href="/docs/guides/"' in out
        assert 'src="/docs/img/a.png"' in out
        assert 'poster="/docs/p.jpg"' in out
        assert 'data-target="/docs/x/"' in out

    def test_skips_other_values(self) -> None:
        html = '<a href="//cdn.example.com/x">a</a><a href="#top">b</a><a href="page/">c</a><a href="https://e.com/">d</a>'
        assert prefix_internal_links(html, "/docs") == html

    def test_srcset_candidates(self) -> None:
        out = prefix_internal_links('<img srcset="/a.png 1x, /b.png 2x, https://e.com/c.png 3x">', "docs/")
        assert 'srcset="/docs/a.png 1x, /docs/b.png 2x, https://e.com/c.png 3x"' in out

    def test_no_base_path_is_a_no_op(self) -> None:
        html = '<a href="/guides/">g</a>'
        assert prefix_internal_links(html, "") == html


class TestExternalLinks:
    def test_decorates_external_link(self) -> None:
        out = decorate_external_links('<a href="https://other.org/page">Other</a>', "https://docs.example.com")
        assert 'target="_blank"' in out
        assert 'rel="noopener noreferrer"' in out
        assert 'class="external-icon" aria-hidden="true"' in out
        assert '<span class="sr-only">(opens in new tab)</span>' in out

    @pytest.mark.parametrize(
        "html",
        [
            '<a href="https://www.example.com/x">same site</a>',
            '<a href="https://example.com/x">same site</a>',
            '<a href="/local/">local</a>',
            '<a href="#frag">frag</a>',
            '<a href="mailto:me@example.com">mail</a>',
            '<a href="https://other.org/"><img src="/badge.png"></a>',
        ],
    )
    def test_leaves_other_links_alone(self, html: str) -> None:
        assert decorate_external_links(html, "https://www.example.com/docs/") == html

    def test_keeps_existing_target_and_rel(self) -> None:
        out = decorate_external_links('<a href="https://other.org" target="_self" rel="me">x</a>', "")
        assert out.count("target=") == 1
        assert out.count("rel=") == 1
        assert "external-icon" in out


class TestCodeBlocks:
    @pytest.mark.parametrize(
        ("spec", "expected"),
        [
            ("2,4-5", [2, 4, 5]),
            ("3", [3]),
            ("5-3", []),
            ("1, x, 2-a, 7", [1, 7]),
            ("", []),
            ("4,2,4", [2, 4]),
        ],
    )
    def test_parse_line_spec(self, spec: str, expected: list[int]) -> None:
        assert parse_line_spec(spec) == expected

    def test_apply_line_highlighting(self) -> None:
        out = apply_line_highlighting("a\nb\nc\n", [2])
        assert out == '<span class="line">a</span>\n<span class="line highlight">b</span>\n<span class="line">c</span>\n'
        assert apply_line_highlighting("a\nb", []) == "a\nb"

    def test_wraps_code_block_with_copy_button(self) -> None:
        out = wrap_code_blocks("<pre><code>x = 1\n</code></pre>")
        assert out.startswith('<div class="code-block">')
        assert '<button class="copy-button" aria-label="Copy code to clipboard">' in out
        assert '<span class="copy-text">Copy</span>' in out
        assert "<pre><code>x = 1\n</code></pre>" in out

    def test_marks_requested_lines_from_fence_info(self) -> None:
        html = render_markdown("```go {2,4-5}\nline1\nline2\nline3\nline4\nline5\nline6\n```\n")
        out = wrap_code_blocks(html)
        lines = re.findall(r'<span class="line( highlight)?">', out)
        assert len(lines) == 6
        assert [i + 1 for i, mark in enumerate(lines) if mark] == [2, 4, 5]
        assert "data-info" not in out


def test_enhance_html_applies_every_step() -> None:
    html = (
        "<h2>Links</h2>"
        '<p><a href="/guides/">in</a> <a href="https://other.org/">out</a></p>'
        "<pre><code>code\n</code></pre>"
    )
    out = enhance_html(html, base_path="/docs", site_url="https://example.com/docs/")
    assert '<h2 id="links">' in out
    assert 'href="/docs/guides/"' in out
    assert 'target="_blank"' in out
    assert 'class="code-block"' in out
    assert 'href="#links"' in out
