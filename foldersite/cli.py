from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from .config import load_config, resolve_template
from .exceptions import BrokenLinksError, FoldersiteError
from .links import BrokenLink, format_report
from .pages import SiteWriter
from .pipeline import RenderSettings, collect_broken_links, render_site, resolve_workers
from .tree import build_tree
from .utils import base_path_from_url, clean_output_dir, normalize_base_path, parse_bool, parse_int


def report_broken_links(broken: list[BrokenLink], allowed: bool) -> None:
    if allowed:
        header = f"Found {len(broken)} broken internal link(s) (continuing due to --allow-broken-links):"
    else:
        header = f"Found {len(broken)} broken internal link(s):"
    print("", file=sys.stderr)
    print(header, file=sys.stderr)
    print("", file=sys.stderr)
    print(format_report(broken), file=sys.stderr)


def build_site(args: argparse.Namespace) -> bool:
    """Build the whole site; returns ``False`` when there was nothing to build.

    Every document is rendered and validated before anything is written, so
    a failing build leaves the output directory untouched.
    """
    input_dir = Path(args.input)
    output_dir = Path(args.output)
    project_root = Path.cwd()

    base_path = normalize_base_path(getattr(args, "base_path", "") or "")
    site_url = getattr(args, "site_url", "") or ""
    if not base_path:
        base_path = base_path_from_url(site_url)
    workers = resolve_workers(getattr(args, "build_workers", 0))
    allow_broken = parse_bool(getattr(args, "allow_broken_links", False))

    tree = build_tree(input_dir, auto_index=parse_bool(getattr(args, "auto_index", True)))
    if not tree.pages:
        print(f"No markdown files found in {input_dir}. Nothing to build.")
        return False
    print(f"Found {len(tree.pages)} page(s) in {input_dir}.")

    settings = RenderSettings(
        valid_urls=tree.valid_urls,
        base_path=base_path,
        site_url=site_url,
        toc_min_items=parse_int(getattr(args, "toc_min_items", 3), 3),
    )
    rendered = render_site(tree, settings, workers)

    broken = collect_broken_links(rendered)
    if broken:
        report_broken_links(broken, allow_broken)
        if not allow_broken:
            raise BrokenLinksError(broken)

    if parse_bool(getattr(args, "clean", True)):
        clean_output_dir(output_dir, project_root)
    writer = SiteWriter(
        tree,
        output_dir,
        args.site_name,
        base_path=base_path,
        template=resolve_template(args),
    )
    written = writer.write_site(rendered, copy_attachments=parse_bool(getattr(args, "copy_attachments", True)))
    print(f"Wrote {written} page(s).")
    return True


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def build_parser(argv: list[str] | None = None) -> argparse.ArgumentParser:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    parser = argparse.ArgumentParser(description="Build a static documentation site from a folder of Markdown.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--input", default=cfg_str("input", "content"), help="Directory containing Markdown documents.")
    parser.add_argument("--output", default=cfg_str("output", "dist"), help="Output directory for the site.")
    parser.add_argument("--site-name", default=cfg_str("site_name", "Documentation"), help="Site title.")
    parser.add_argument(
        "--site-url",
        default=cfg_str("site_url", ""),
        help="Public site URL; its host marks internal links and its path is the deployment sub-path.",
    )
    parser.add_argument(
        "--base-path",
        default=cfg_str("base_path", ""),
        help="Deployment sub-path (e.g. /docs). Overrides the path of --site-url.",
    )
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean", True),
        help="Clean output directory before writing.",
    )
    parser.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for rendering (0 = auto).",
    )
    parser.add_argument(
        "--allow-broken-links",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("allow_broken_links", False),
        help="Report broken internal links as warnings instead of failing the build.",
    )
    parser.add_argument(
        "--auto-index",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("auto_index", True),
        help="Generate listing pages for folders without an index document.",
    )
    parser.add_argument(
        "--toc-min-items",
        default=cfg_int("toc_min_items", 3),
        type=int,
        help="Minimum number of h2-h4 headings before a page gets a table of contents.",
    )
    parser.add_argument(
        "--template",
        default=cfg_str("template", ""),
        help="Path to an HTML page shell (relative to the config file).",
    )
    parser.add_argument(
        "--copy-attachments",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("copy_attachments", True),
        help="Copy images and other attachments into the output.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", default=cfg_bool("verbose", False), help="Show info logs.")
    parser.add_argument("--quiet", "-q", action="store_true", default=cfg_bool("quiet", False), help="Only show errors.")
    return parser


def main(argv: list[str] | None = None) -> None:
    try:
        parser = build_parser(argv)
    except FoldersiteError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    start = time.perf_counter()
    try:
        built = build_site(args)
    except FoldersiteError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    if built:
        print(f"Site generated in: {args.output}")
