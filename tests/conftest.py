"""Test setup for foldersite."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def make_site(tmp_path: Path) -> Callable[[dict], Path]:
    """Write ``{relative path: text}`` under a fresh content directory.

    A ``bytes`` value is written as binary, ``None`` creates an empty folder.
    """

    def _make(files: dict) -> Path:
        root = tmp_path / "content"
        root.mkdir(exist_ok=True)
        for relative, text in files.items():
            path = root / relative
            if text is None:
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                path.write_bytes(text)
            else:
                path.write_text(text, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def chdir_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def set_mtime(path: Path, timestamp: float) -> None:
    os.utime(path, (timestamp, timestamp))
