from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from .content import parse_front_matter, preprocess
from .exceptions import RenderError
from .links import BrokenLink, validate_links
from .postprocess import enhance_html
from .render import render_markdown
from .toc import MIN_TOC_ITEMS, ReadingTime, TocItem, extract_toc, reading_time
from .tree import SiteNode, SiteTree, ValidURLSet

logger = logging.getLogger(__name__)

MAX_WORKERS = 32


@dataclass
class RenderSettings:
    valid_urls: ValidURLSet
    base_path: str = ""
    site_url: str = ""
    toc_min_items: int = MIN_TOC_ITEMS


@dataclass
class RenderedPage:
    node: SiteNode
    url: str
    title: str
    html: str
    markdown: str
    broken_links: list[BrokenLink] = field(default_factory=list)
    toc: list[TocItem] = field(default_factory=list)
    reading_time: ReadingTime = ReadingTime(minutes=1, words=0)


def resolve_workers(value: Optional[int]) -> int:
    workers = int(value or 0)
    if workers <= 0:
        workers = os.cpu_count() or 1
    return max(1, min(workers, MAX_WORKERS))


def render_page(node: SiteNode, settings: RenderSettings) -> RenderedPage:
    """Preprocess, render, enhance and validate one document.

    Only reads ``node`` and ``settings``, so pages can be rendered from
    several threads at once.
    """
    try:
        source = node.source.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise RenderError(f"Failed to read {node.source}: {exc}") from exc

    meta, _ = parse_front_matter(source)
    prepared = preprocess(source, node.source_dir)
    try:
        body = render_markdown(prepared)
    except Exception as exc:
        raise RenderError(f"Failed to render {node.source}: {exc}") from exc

    html = enhance_html(body, settings.base_path, settings.site_url)
    broken = validate_links(
        html,
        node.relative_path,
        source,
        settings.valid_urls,
        source_page=node.url,
        source_dir=node.source_dir,
        base_path=settings.base_path,
    )
    title = str(meta.get("title") or "").strip() or node.name
    logger.debug("Rendered %s -> %s", node.relative_path, node.url)
    return RenderedPage(
        node=node,
        url=node.url,
        title=title,
        html=html,
        markdown=source,
        broken_links=broken,
        toc=extract_toc(html, settings.toc_min_items),
        reading_time=reading_time(body),
    )


def render_site(tree: SiteTree, settings: RenderSettings, workers: int = 1) -> list[RenderedPage]:
    pages = tree.pages
    workers = min(resolve_workers(workers), len(pages)) if pages else 1
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda node: render_page(node, settings), pages))
    return [render_page(node, settings) for node in pages]


def collect_broken_links(rendered: list[RenderedPage]) -> list[BrokenLink]:
    broken: list[BrokenLink] = []
    for page in rendered:
        broken.extend(page.broken_links)
    return broken
