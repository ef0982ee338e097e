"""Tests for internal link validation."""

from __future__ import annotations

import pytest

from foldersite.links import (
    BrokenLink,
    extract_internal_links,
    find_similar_urls,
    format_broken_link,
    normalize_link,
    validate_links,
)
from foldersite.tree import ValidURLSet

VALID = ValidURLSet(["/", "/guides/", "/guides/setup/", "/guides/deploy/", "/about/"])


def test_extract_internal_links() -> None:
    html = (
        '<a href="/a/">1</a><a href="/a/">dup</a><a href="/">home</a>'
        '<a href="/#top">top</a><a href="#local">local</a>'
        '<a href="https://e.com/">ext</a><a href="//cdn.e.com/x">cdn</a><a href="/b/#s">b</a>'
    )
    assert extract_internal_links(html) == ["/a/", "/b/#s"]


@pytest.mark.parametrize(
    ("link", "expected"),
    [
        ("/guides", "/guides/"),
        ("/guides/", "/guides/"),
        ("/guides/#intro", "/guides/"),
        ("/guides?x=1", "/guides/"),
        ("/files/report.pdf", "/files/report.pdf"),
        ("/v1.2/notes", "/v1.2/notes/"),
    ],
)
def test_normalize_link(link: str, expected: str) -> None:
    assert normalize_link(link) == expected


def test_missing_link_is_reported_once() -> None:
    broken = validate_links('<a href="/missing/">x</a>', "page.md", "", VALID)
    assert len(broken) == 1
    assert broken[0].link_url == "/missing/"
    assert broken[0].source_file == "page.md"


def test_slash_variants_are_accepted() -> None:
    html = '<a href="/guides">a</a><a href="/about/#team">b</a><a href="/guides/setup/">c</a>'
    assert validate_links(html, "page.md", "", VALID) == []


def test_attachment_links_are_not_checked() -> None:
    html = '<a href="/missing/file.pdf">pdf</a><img src="/x.png"><a href="/img/Photo.PNG">p</a>'
    assert validate_links(html, "page.md", "", VALID) == []


def test_line_info_from_cross_reference() -> None:
    source = "# Setup\n\nIntro text.\nSee [[Intro|the intro]] for more.\n"
    html = '<p>See <a href="/guides/intro/">the intro</a> for more.</p>'
    broken = validate_links(html, "guides/setup.md", source, VALID, source_page="/guides/setup/", source_dir="/guides/")
    assert len(broken) == 1
    report = broken[0]
    assert report.line_number == 4
    assert report.original_syntax == "[[Intro|the intro]]"
    assert report.link_text == "the intro"
    assert report.source_page == "/guides/setup/"
    assert report.suggestions == ["/guides/"]


def test_line_info_from_markdown_link() -> None:
    source = "line one\n[Deploy docs](/guides/deploy-docs/)\n"
    html = '<a href="/guides/deploy-docs/">Deploy docs</a>'
    report = validate_links(html, "index.md", source, VALID)[0]
    assert report.line_number == 2
    assert report.original_syntax == "[Deploy docs](/guides/deploy-docs/)"
    assert report.link_text == "Deploy docs"


def test_unknown_origin_has_no_line() -> None:
    report = validate_links('<a href="/nowhere/">x</a>', "index.md", "no links here", VALID)[0]
    assert report.line_number == 0
    assert report.original_syntax == ""


def test_base_path_is_stripped_before_checking() -> None:
    html = '<a href="/docs/guides/">ok</a><a href="/docs/nope/">bad</a><a href="/docs/">home</a>'
    broken = validate_links(html, "index.md", "", VALID, base_path="/docs")
    assert [b.link_url for b in broken] == ["/nope/"]


def test_find_similar_urls() -> None:
    valid = ["/", "/guides/", "/guides/setup/", "/guides/setup-advanced/", "/setup/", "/other/"]
    assert find_similar_urls("/guides/setup/extra/", valid) == ["/guides/", "/guides/setup/", "/setup/"]
    assert find_similar_urls("/other/page/", valid) == ["/other/"]
    assert find_similar_urls("/setup/", valid) == ["/guides/setup-advanced/", "/guides/setup/", "/setup/"]
    assert find_similar_urls("/zzz/", valid) == []


def test_format_broken_link() -> None:
    link = BrokenLink(
        source_file="guides/setup.md",
        link_url="/guides/intro/",
        line_number=4,
        original_syntax="[[intro]]",
        link_text="intro",
        suggestions=["/guides/"],
    )
    assert format_broken_link(1, link) == [
        "Link #1:",
        "  File: guides/setup.md:4",
        "  Syntax: [[intro]]",
        "  Text: intro",
        "  Broken URL: /guides/intro/",
        "  Suggestions:",
        "    - /guides/",
    ]


def test_format_without_optional_fields() -> None:
    link = BrokenLink(source_file="a.md", link_url="/x/", link_text="/x/")
    assert format_broken_link(2, link) == ["Link #2:", "  File: a.md", "  Broken URL: /x/"]
