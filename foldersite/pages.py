from __future__ import annotations

import html
import logging
import shutil
from pathlib import Path
from typing import Optional

from .exceptions import OutputError
from .pipeline import RenderedPage
from .render import render_template, write_text
from .toc import render_toc
from .tree import SiteNode, SiteTree, auto_index_items, breadcrumbs, page_navigation
from .utils import prefix_url

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{title}}</title>
</head>
<body>
  <header class="site-header"><a class="site-name" href="{{home}}">{{site_name}}</a></header>
  <div class="layout">
    <nav class="sidebar" aria-label="Site navigation">{{navigation}}</nav>
    <main class="content">
      {{breadcrumbs}}
      {{page_meta}}
      {{content}}
      {{page_nav}}
    </main>
    <aside class="toc-sidebar">{{toc}}</aside>
  </div>
</body>
</html>
"""


def output_path_for_url(output_dir: Path, url: str) -> Path:
    """``/`` -> ``index.html``, ``/a/b/`` -> ``a/b/index.html``, ``/a/x.png`` -> ``a/x.png``."""
    relative = url.strip("/")
    if not relative:
        return output_dir / "index.html"
    if url.endswith("/"):
        return output_dir / relative / "index.html"
    return output_dir / relative


def _nav_entry(node: SiteNode, current_url: str, base_path: str) -> str:
    label = html.escape(node.name)
    target = node.clickable_target if node.is_folder else node.url
    if not target:
        return f'<span class="nav-label">{label}</span>'
    current = ' class="active" aria-current="page"' if target == current_url else ""
    return f'<a href="{prefix_url(base_path, target)}"{current}>{label}</a>'


def build_navigation(folder: SiteNode, current_url: str, base_path: str) -> str:
    items = []
    for child in folder.children:
        if child.is_folder:
            nested = build_navigation(child, current_url, base_path)
            items.append(f'<li class="nav-folder">{_nav_entry(child, current_url, base_path)}{nested}</li>')
        elif not child.is_hidden:
            items.append(f'<li class="nav-page">{_nav_entry(child, current_url, base_path)}</li>')
    if not items:
        return ""
    return f'<ul class="nav-list">{"".join(items)}</ul>'


def build_breadcrumbs(node: SiteNode, site_name: str, base_path: str) -> str:
    crumbs = breadcrumbs(node, site_name)
    if len(crumbs) < 2:
        return ""
    items = []
    for crumb in crumbs:
        label = html.escape(crumb.label)
        if crumb.current:
            items.append(f'<li aria-current="page">{label}</li>')
        elif crumb.url:
            items.append(f'<li><a href="{prefix_url(base_path, crumb.url)}">{label}</a></li>')
        else:
            items.append(f"<li>{label}</li>")
    return f'<nav class="breadcrumbs" aria-label="Breadcrumb"><ol>{"".join(items)}</ol></nav>'


def build_page_nav(previous: Optional[SiteNode], following: Optional[SiteNode], base_path: str) -> str:
    if previous is None and following is None:
        return ""
    parts = []
    if previous is not None:
        parts.append(
            f'<a class="page-nav-prev" href="{prefix_url(base_path, previous.url)}">'
            f'<span class="page-nav-label">Previous</span>{html.escape(previous.name)}</a>'
        )
    if following is not None:
        parts.append(
            f'<a class="page-nav-next" href="{prefix_url(base_path, following.url)}">'
            f'<span class="page-nav-label">Next</span>{html.escape(following.name)}</a>'
        )
    return f'<nav class="page-nav" aria-label="Pagination">{"".join(parts)}</nav>'


def build_auto_index_content(folder: SiteNode, title: str, base_path: str) -> str:
    items = []
    for item in auto_index_items(folder):
        css = "folder-item" if item.is_folder else "page-item"
        label = html.escape(item.title)
        if item.url:
            items.append(f'<li class="{css}"><a href="{prefix_url(base_path, item.url)}">{label}</a></li>')
        else:
            items.append(f'<li class="{css}"><span>{label}</span></li>')
    if items:
        listing = f'<ul class="folder-index">{"".join(items)}</ul>'
    else:
        listing = '<p class="empty-folder">This folder is empty.</p>'
    return f'<article class="auto-index-page"><h1>{html.escape(title)}</h1>{listing}</article>'


class SiteWriter:
    """Wraps rendered documents in the page shell and writes them to disk."""

    def __init__(
        self,
        tree: SiteTree,
        output_dir: Path,
        site_name: str,
        base_path: str = "",
        template: str = "",
    ) -> None:
        self.tree = tree
        self.output_dir = output_dir
        self.site_name = site_name
        self.base_path = base_path
        self.template = template or DEFAULT_TEMPLATE

    def render_shell(
        self,
        node: SiteNode,
        title: str,
        content: str,
        page_nav: str = "",
        toc: str = "",
        page_meta: str = "",
    ) -> str:
        page_title = title if node.url == "/" and title == self.site_name else f"{title} | {self.site_name}"
        return render_template(
            self.template,
            title=html.escape(page_title),
            site_name=html.escape(self.site_name),
            home=prefix_url(self.base_path, "/"),
            breadcrumbs=build_breadcrumbs(node, self.site_name, self.base_path),
            page_nav=page_nav,
            page_meta=page_meta,
            toc=toc,
            navigation=build_navigation(self.tree.root, node.url, self.base_path),
            content=content,
        )

    def _write(self, url: str, text: str) -> Path:
        return self._write_path(output_path_for_url(self.output_dir, url), text)

    def _write_path(self, path: Path, text: str) -> Path:
        try:
            write_text(path, text)
        except OSError as exc:
            raise OutputError(f"Failed to write {path}: {exc}") from exc
        return path

    def write_page(self, page: RenderedPage) -> Path:
        previous, following = page_navigation(page.node, self.tree.pages)
        document = self.render_shell(
            page.node,
            page.title,
            f'<article class="page">{page.html}</article>',
            build_page_nav(previous, following, self.base_path),
            toc=render_toc(page.toc),
            page_meta=f'<p class="page-meta"><span class="reading-time">{page.reading_time}</span></p>',
        )
        return self._write(page.url, document)

    def write_auto_index(self, folder: SiteNode) -> Path:
        title = folder.name or self.site_name
        content = build_auto_index_content(folder, title, self.base_path)
        return self._write(folder.url, self.render_shell(folder, title, content))

    def write_404(self) -> Path:
        home = prefix_url(self.base_path, "/")
        content = (
            '<article class="not-found">'
            "<h1>Page not found</h1>"
            "<p>The page you requested does not exist.</p>"
            f'<a href="{home}">Back to home</a>'
            "</article>"
        )
        document = render_template(
            self.template,
            title=html.escape(f"404 | {self.site_name}"),
            site_name=html.escape(self.site_name),
            home=home,
            breadcrumbs="",
            page_nav="",
            page_meta="",
            toc="",
            navigation=build_navigation(self.tree.root, "", self.base_path),
            content=content,
        )
        return self._write_path(self.output_dir / "404.html", document)

    def copy_attachments(self) -> int:
        copied = 0
        for source, url in self.tree.attachments:
            dest = output_path_for_url(self.output_dir, url)
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, dest)
            except OSError as exc:
                raise OutputError(f"Failed to copy {source}: {exc}") from exc
            copied += 1
        return copied

    def write_site(self, rendered: list[RenderedPage], copy_attachments: bool = True) -> int:
        written = 0
        for page in rendered:
            self.write_page(page)
            written += 1
        for folder in self.tree.auto_index_folders:
            self.write_auto_index(folder)
            written += 1
        self.write_404()
        if copy_attachments:
            count = self.copy_attachments()
            logger.info("Copied %d attachment(s)", count)
        return written
