"""Tests for writing the site to disk."""

from __future__ import annotations

from pathlib import Path

import pytest

from foldersite.exceptions import OutputError
from foldersite.pages import (
    SiteWriter,
    build_auto_index_content,
    build_navigation,
    output_path_for_url,
)
from foldersite.pipeline import RenderSettings, render_site
from foldersite.tree import build_tree


def write(root: Path, out: Path, base_path: str = "", template: str = "") -> SiteWriter:
    tree = build_tree(root)
    rendered = render_site(tree, RenderSettings(valid_urls=tree.valid_urls, base_path=base_path))
    writer = SiteWriter(tree, out, "Docs", base_path=base_path, template=template)
    writer.write_site(rendered)
    return writer


def test_output_path_for_url(tmp_path: Path) -> None:
    assert output_path_for_url(tmp_path, "/") == tmp_path / "index.html"
    assert output_path_for_url(tmp_path, "/a/b/") == tmp_path / "a" / "b" / "index.html"
    assert output_path_for_url(tmp_path, "/img/x.png") == tmp_path / "img" / "x.png"


def test_writes_pages_auto_index_and_404(make_site, tmp_path: Path) -> None:
    root = make_site(
        {
            "index.md": "# Home\n",
            "guides/01-setup.md": "# Setup\n",
            "guides/02-deploy.md": "# Deploy\n",
        }
    )
    out = tmp_path / "dist"
    write(root, out)
    home = (out / "index.html").read_text(encoding="utf-8")
    assert "<title>Home | Docs</title>" in home
    assert '<a href="/guides/">Guides</a>' in home

    setup = (out / "guides" / "setup" / "index.html").read_text(encoding="utf-8")
    assert 'class="breadcrumbs"' in setup
    assert '<li><a href="/guides/">Guides</a></li>' in setup
    assert 'class="page-nav-prev" href="/"' in setup
    assert 'class="page-nav-next" href="/guides/deploy/"' in setup
    assert 'class="active" aria-current="page"' in setup

    listing = (out / "guides" / "index.html").read_text(encoding="utf-8")
    assert '<article class="auto-index-page">' in listing
    assert '<li class="page-item"><a href="/guides/deploy/">Deploy</a></li>' in listing

    not_found = (out / "404.html").read_text(encoding="utf-8")
    assert '<a href="/">Back to home</a>' in not_found


def test_base_path_applies_to_shell_links(make_site, tmp_path: Path) -> None:
    root = make_site({"index.md": "# Home\n", "a.md": "# A\n[[index]]\n"})
    out = tmp_path / "dist"
    write(root, out, base_path="/docs")
    page = (out / "a" / "index.html").read_text(encoding="utf-8")
    assert 'href="/docs/"' in page
    assert 'class="page-nav-prev" href="/docs/"' in page
    assert '<a href="/docs/a/" class="active"' in page
    assert '<a href="/docs/">Back to home</a>' in (out / "404.html").read_text(encoding="utf-8")


def test_attachments_are_copied(make_site, tmp_path: Path) -> None:
    root = make_site({"index.md": "![[My Photo.png]]\n", "My Photo.png": b"\x89PNG", "guides/a.md": "x", "guides/Chart File.svg": "<svg/>"})
    out = tmp_path / "dist"
    write(root, out)
    assert (out / "my-photo.png").read_bytes() == b"\x89PNG"
    assert (out / "guides" / "chart-file.svg").exists()
    assert '<a href="/my-photo.png">My Photo.png</a>' in (out / "index.html").read_text(encoding="utf-8")


def test_custom_template(make_site, tmp_path: Path) -> None:
    root = make_site({"index.md": "# Home\n"})
    out = tmp_path / "dist"
    write(root, out, template="<html>{{title}}|{{content}}</html>")
    text = (out / "index.html").read_text(encoding="utf-8")
    assert text.startswith("<html>Home | Docs|")


def test_empty_folder_listing() -> None:
    from foldersite.tree import SiteNode

    folder = SiteNode(name="Empty", path_segments=("empty",), slug="empty", is_folder=True, source=Path("empty"), url="/empty/")
    html = build_auto_index_content(folder, "Empty", "")
    assert "This folder is empty." in html


def test_navigation_marks_unclickable_folders(make_site) -> None:
    root = make_site({"guides/a.md": "# A\n"})
    tree = build_tree(root, auto_index=False)
    nav = build_navigation(tree.root, "/guides/a/", "")
    assert '<span class="nav-label">Guides</span>' in nav
    assert '<a href="/guides/a/" class="active" aria-current="page">A</a>' in nav


def test_write_failures_name_the_file(make_site, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = make_site({"index.md": "# Home\n"})
    tree = build_tree(root)
    writer = SiteWriter(tree, tmp_path / "dist", "Docs")

    def refuse(path: Path, text: str) -> None:
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("foldersite.pages.write_text", refuse)
    with pytest.raises(OutputError, match=r"Failed to write .*404\.html"):
        writer.write_404()
    with pytest.raises(OutputError, match=r"Failed to write .*index\.html"):
        writer.write_auto_index(tree.root)


def test_document_pages_show_contents_and_reading_time(make_site, tmp_path: Path) -> None:
    root = make_site({"index.md": "# Home\n\n## A\n\n## B\n\n## C\n", "empty/x.md": "x"})
    out = tmp_path / "dist"
    write(root, out)
    home = (out / "index.html").read_text(encoding="utf-8")
    assert '<nav class="toc" aria-label="Table of contents">' in home
    assert '<a href="#b">B</a>' in home
    assert '<span class="reading-time">1 min read</span>' in home
    listing = (out / "empty" / "index.html").read_text(encoding="utf-8")
    assert 'class="toc"' not in listing
    assert "min read" not in listing
