from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .content import extract_title, parse_front_matter
from .exceptions import TreeBuildError
from .slugs import (
    FileMetadata,
    attachment_slug,
    extract_metadata,
    is_attachment,
    is_hidden_name,
    is_index_file,
    is_markdown_file,
    slugify_path,
    strip_markdown_suffix,
)
from .utils import parse_bool

logger = logging.getLogger(__name__)

NUMBERLESS = float("inf")


@dataclass(eq=False)
class SiteNode:
    name: str
    path_segments: tuple[str, ...]
    slug: str
    is_folder: bool
    source: Path
    metadata: Optional[FileMetadata] = None
    title: str = ""
    url: str = "/"
    is_draft: bool = False
    is_hidden: bool = False
    is_index: bool = False
    clickable_target: Optional[str] = None
    needs_auto_index: bool = False
    landing: Optional["SiteNode"] = field(default=None, repr=False)
    children: list["SiteNode"] = field(default_factory=list, repr=False)
    _parent: Optional[weakref.ReferenceType] = field(default=None, repr=False)

    @property
    def parent(self) -> Optional["SiteNode"]:
        return self._parent() if self._parent is not None else None

    def add_child(self, child: "SiteNode") -> None:
        child._parent = weakref.ref(self)
        self.children.append(child)

    @property
    def relative_path(self) -> str:
        return "/".join(self.path_segments)

    @property
    def ordering_key(self) -> tuple:
        meta = self.metadata
        if meta is None:
            return (1, 0, NUMBERLESS, self.slug, self.name.lower())
        dated = 0 if meta.has_date else 1
        newest_first = -meta.date.toordinal() if meta.has_date else 0
        number = meta.number if meta.number is not None else NUMBERLESS
        return (dated, newest_first, number, self.slug, self.name.lower())

    @property
    def source_dir(self) -> str:
        """URL of the folder that holds this node (``/`` at the root)."""
        parent = self.parent
        return parent.url if parent is not None else "/"

    def has_documents(self) -> bool:
        if not self.is_folder:
            return True
        return any(child.has_documents() for child in self.children)


class ValidURLSet:
    """Immutable set of every URL a build can serve."""

    def __init__(self, urls: Iterable[str]) -> None:
        self._urls = frozenset(urls)

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._urls))

    def __len__(self) -> int:
        return len(self._urls)

    def __repr__(self) -> str:
        return f"ValidURLSet({sorted(self._urls)!r})"

    def matches(self, url: str) -> bool:
        if url in self._urls:
            return True
        stripped = url.rstrip("/")
        return stripped in self._urls or f"{stripped}/" in self._urls


@dataclass
class SiteTree:
    root: SiteNode
    pages: list[SiteNode]
    valid_urls: ValidURLSet
    auto_index_folders: list[SiteNode]
    attachments: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def documents(self) -> list[SiteNode]:
        return [node for node in iter_nodes(self.root) if not node.is_folder]

    def find(self, url: str) -> Optional[SiteNode]:
        for node in self.pages:
            if node.url == url:
                return node
        return None


@dataclass
class Breadcrumb:
    label: str
    url: Optional[str]
    current: bool = False


@dataclass
class IndexItem:
    title: str
    url: Optional[str]
    is_folder: bool


def iter_nodes(node: SiteNode) -> Iterator[SiteNode]:
    yield node
    for child in node.children:
        yield from iter_nodes(child)


def iter_folders(node: SiteNode) -> Iterator[SiteNode]:
    return (item for item in iter_nodes(node) if item.is_folder)


def navigation_key(node: SiteNode) -> tuple:
    return (node.is_folder, *node.ordering_key)


def listing_key(item: IndexItem) -> tuple:
    return (not item.is_folder, item.title.lower())


def _read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise TreeBuildError(f"Failed to read {path}: {exc}") from exc


def _make_document(path: Path, segments: tuple[str, ...]) -> Optional[SiteNode]:
    try:
        mtime = path.stat().st_mtime
    except OSError as exc:
        raise TreeBuildError(f"Failed to read {path}: {exc}") from exc
    meta = extract_metadata(path.name, mtime)
    text = _read_document(path)
    front_matter, _ = parse_front_matter(text)
    if meta.is_draft or parse_bool(front_matter.get("draft")):
        logger.debug("Skipping draft %s", path)
        return None
    title = str(front_matter.get("title") or "").strip() or extract_title(text)
    return SiteNode(
        name=title or meta.display_name or strip_markdown_suffix(path.name),
        path_segments=segments,
        slug=meta.slug,
        is_folder=False,
        source=path,
        metadata=meta,
        title=title,
    )


def _scan_directory(folder: SiteNode, attachments: list[tuple[Path, str]]) -> None:
    try:
        entries = sorted(folder.source.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise TreeBuildError(f"Failed to read directory {folder.source}: {exc}") from exc

    for entry in entries:
        name = entry.name
        if is_hidden_name(name):
            continue
        segments = (*folder.path_segments, name)
        if entry.is_dir():
            try:
                mtime = entry.stat().st_mtime
            except OSError as exc:
                raise TreeBuildError(f"Failed to read directory {entry}: {exc}") from exc
            meta = extract_metadata(name, mtime)
            if meta.is_draft:
                logger.debug("Skipping draft folder %s", entry)
                continue
            child = SiteNode(
                name=meta.display_name or name,
                path_segments=segments,
                slug=meta.slug,
                is_folder=True,
                source=entry,
                metadata=meta,
            )
            _scan_directory(child, attachments)
            if child.has_documents():
                folder.add_child(child)
        elif is_markdown_file(name):
            child = _make_document(entry, segments)
            if child is not None:
                folder.add_child(child)
        elif is_attachment(name):
            url_dir = slugify_path("/".join(folder.path_segments))
            url = f"/{url_dir}/{attachment_slug(name)}" if url_dir else f"/{attachment_slug(name)}"
            attachments.append((entry, url))


def _sort_children(folder: SiteNode) -> None:
    folder.children.sort(key=navigation_key)
    for child in folder.children:
        if child.is_folder:
            _sort_children(child)


def _pick_index(folder: SiteNode) -> Optional[SiteNode]:
    candidates = [child for child in folder.children if not child.is_folder and is_index_file(child.source.name)]
    if not candidates:
        return None
    candidates.sort(key=lambda node: (strip_markdown_suffix(node.source.name).lower() != "index", node.source.name))
    return candidates[0]


def _claim(node: SiteNode, parent_url: str, claimed: set[str]) -> None:
    base = node.slug
    url = f"{parent_url}{base}/"
    counter = 1
    while url in claimed:
        counter += 1
        url = f"{parent_url}{base}-{counter}/"
    if counter > 1:
        logger.warning("URL %s%s/ is already taken; %s will use %s", parent_url, base, node.relative_path, url)
        node.slug = f"{base}-{counter}"
    claimed.add(url)
    node.url = url


def _resolve_folder(folder: SiteNode, auto_index: bool, claimed: set[str]) -> None:
    index_node = _pick_index(folder)
    if index_node is not None:
        index_node.is_index = True
        index_node.is_hidden = True
        index_node.url = folder.url
        folder.landing = index_node
        folder.clickable_target = folder.url
    elif folder.landing is not None:
        folder.clickable_target = folder.url
    elif auto_index or folder.parent is None:
        folder.needs_auto_index = True
        folder.clickable_target = folder.url

    files = [child for child in folder.children if not child.is_folder and child is not index_node]
    subfolders = [child for child in folder.children if child.is_folder]

    for sub in subfolders:
        if _pick_index(sub) is not None:
            continue
        for candidate in files:
            if not candidate.is_hidden and candidate.slug == sub.slug:
                candidate.is_hidden = True
                sub.landing = candidate
                break

    for sub in subfolders:
        _claim(sub, folder.url, claimed)
        if sub.landing is not None:
            sub.landing.url = sub.url
    for node in files:
        if not node.is_hidden:
            _claim(node, folder.url, claimed)

    for sub in subfolders:
        _resolve_folder(sub, auto_index, claimed)


def _collect_valid_urls(root: SiteNode) -> ValidURLSet:
    urls = {"/"}
    for node in iter_nodes(root):
        if node.is_draft:
            continue
        if node.is_folder:
            if node.clickable_target:
                urls.add(node.clickable_target)
        elif not node.is_hidden:
            urls.add(node.url)
    return ValidURLSet(urls)


def build_tree(root_dir: Path, auto_index: bool = True) -> SiteTree:
    """Walk ``root_dir`` once and resolve every document and folder URL.

    Raises ``TreeBuildError`` when the root or anything under it cannot be
    read. A root without documents gives an empty tree and a warning.
    """
    root_path = Path(root_dir)
    if not root_path.is_dir():
        raise TreeBuildError(f"Cannot read input directory: {root_path}")

    root = SiteNode(name="", path_segments=(), slug="", is_folder=True, source=root_path, url="/")
    attachments: list[tuple[Path, str]] = []
    _scan_directory(root, attachments)

    if not root.has_documents():
        logger.warning("No markdown files found in %s", root_path)
        root.clickable_target = "/"
        return SiteTree(
            root=root,
            pages=[],
            valid_urls=ValidURLSet(["/"]),
            auto_index_folders=[],
            attachments=attachments,
        )

    _sort_children(root)
    _resolve_folder(root, auto_index, {"/"})
    return SiteTree(
        root=root,
        pages=flatten_pages(root),
        valid_urls=_collect_valid_urls(root),
        auto_index_folders=[folder for folder in iter_folders(root) if folder.needs_auto_index],
        attachments=attachments,
    )


def _flatten(folder: SiteNode, pages: list[SiteNode]) -> None:
    for child in folder.children:
        if child.is_folder:
            if child.landing is not None:
                pages.append(child.landing)
            _flatten(child, pages)
        elif not child.is_hidden:
            pages.append(child)


def flatten_pages(root: SiteNode) -> list[SiteNode]:
    """Every document in reading order: landing pages before their folder contents."""
    pages: list[SiteNode] = []
    if root.landing is not None:
        pages.append(root.landing)
    _flatten(root, pages)
    return pages


def page_navigation(node: SiteNode, pages: list[SiteNode]) -> tuple[Optional[SiteNode], Optional[SiteNode]]:
    for idx, page in enumerate(pages):
        if page is node:
            previous = pages[idx - 1] if idx > 0 else None
            following = pages[idx + 1] if idx < len(pages) - 1 else None
            return previous, following
    return None, None


def breadcrumbs(node: SiteNode, site_name: str) -> list[Breadcrumb]:
    if node.url == "/":
        return [Breadcrumb(label=site_name, url=None, current=True)]

    ancestors: list[SiteNode] = []
    current = node.parent
    while current is not None and current.parent is not None:
        ancestors.insert(0, current)
        current = current.parent
    if node.is_index and ancestors:
        owner = ancestors.pop()
        label = owner.name
    else:
        label = node.name

    crumbs = [Breadcrumb(label=site_name, url="/")]
    crumbs.extend(Breadcrumb(label=folder.name, url=folder.clickable_target) for folder in ancestors)
    crumbs.append(Breadcrumb(label=label, url=None, current=True))
    return crumbs


def auto_index_items(folder: SiteNode) -> list[IndexItem]:
    items = []
    for child in folder.children:
        if child.is_folder:
            items.append(IndexItem(title=child.name, url=child.clickable_target, is_folder=True))
        elif not child.is_hidden:
            items.append(IndexItem(title=child.name, url=child.url, is_folder=False))
    items.sort(key=listing_key)
    return items
