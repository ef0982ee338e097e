"""Exceptions raised by foldersite."""

from __future__ import annotations


class FoldersiteError(Exception):
    """Base exception for foldersite operations."""


class ConfigError(FoldersiteError):
    """Config file could not be read or parsed."""


class TreeBuildError(FoldersiteError):
    """The source directory could not be walked."""


class RenderError(FoldersiteError):
    """A document could not be read or rendered."""


class OutputError(FoldersiteError):
    """The output directory could not be prepared or written."""


class BrokenLinksError(FoldersiteError):
    """Internal links did not resolve and broken links are not allowed."""

    def __init__(self, broken_links: list) -> None:
        self.broken_links = broken_links
        super().__init__(f"build failed: {len(broken_links)} broken internal link(s) found")
