from __future__ import annotations

import shutil
from pathlib import Path
from urllib.parse import urlsplit

from .exceptions import OutputError


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def normalize_base_path(value: str) -> str:
    """``"docs/"`` and ``"/docs"`` both become ``"/docs"``; empty means the domain root."""
    value = (value or "").strip().strip("/")
    return f"/{value}" if value else ""


def prefix_url(base_path: str, url: str) -> str:
    if not base_path or not url.startswith("/") or url.startswith("//"):
        return url
    return f"{base_path}{url}"


def base_path_from_url(site_url: str) -> str:
    return normalize_base_path(urlsplit(site_url or "").path)


def host_from_url(site_url: str) -> str:
    host = (urlsplit(site_url or "").hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def clean_output_dir(output_dir: Path, project_root: Path) -> None:
    if not output_dir.exists():
        return
    output_resolved = output_dir.resolve()
    root_resolved = project_root.resolve()
    if output_resolved == root_resolved:
        raise OutputError("Refusing to clean project root.")
    if not output_resolved.is_relative_to(root_resolved):
        raise OutputError("Refusing to clean output directory outside project root.")
    shutil.rmtree(output_dir)
