"""
ctx-snap — Generate LLM-friendly context snapshots of a codebase.

Overview
--------
Walks a directory, keeps the readable text files and writes them into a
single document meant to be pasted into a language model:

1) **Markdown (default)** — header with totals, a file listing with line
   counts, then every file in a fenced code block.

2) **JSON (`--json`)** — the same records as a structured document.

Version-control ignore rules (`.gitignore`, the global excludes file and
`.git/info/exclude`) are honored unless `--no-respect-gitignore` is given.
Binary files (a null byte in the first 512 bytes), files above
`--max-size-kb` and files matching `--ignore` are dropped; `--include`
restricts the snapshot to matching files. Output is sorted by relative path.

Usage
-----
    ctx-snap
    ctx-snap path/to/project -o project.md -i "*.lock" -i "tests/"
    ctx-snap --json -o context.json --include "src/**.py"
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ctx_snap import __version__
from ctx_snap.config import SnapshotMetadata
from ctx_snap.exceptions import CtxSnapError, OutputWriteError
from ctx_snap.file_manipulation import apply_filters, make_recs, order_recs, walk_files
from ctx_snap.logging import logger, set_quiet, setup_logging
from ctx_snap.output_construction import build_json, build_markdown
from ctx_snap.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    """Build the ctx-snap argument parser.

    Every option defaults to None so that unset flags fall through to the
    environment and config file.
    """
    p = argparse.ArgumentParser(
        prog="ctx-snap",
        description="Generate LLM-friendly context snapshots of your codebase.",
    )
    p.add_argument("path", nargs="?", default=None, help="Directory to snapshot (default: .).")
    p.add_argument("-o", "--output", type=str, default=None, help="Output file (default: context.md).")
    p.add_argument(
        "-m",
        "--max-size-kb",
        type=int,
        default=None,
        help="Maximum file size in KB (default: 100).",
    )
    p.add_argument(
        "-i",
        "--ignore",
        action="append",
        default=None,
        help="Skip files matching pattern (repeatable).",
    )
    p.add_argument(
        "-I",
        "--include",
        action="append",
        default=None,
        help="Only keep files matching pattern (repeatable).",
    )
    p.add_argument("-q", "--quiet", action="store_true", default=None, help="Suppress progress output.")
    p.add_argument("-j", "--json", action="store_true", default=None, help="Output as JSON.")
    p.add_argument(
        "--respect-gitignore",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Honor .gitignore, global excludes and .git/info/exclude (default: on).",
    )
    p.add_argument("--config", type=str, default=None, help="YAML config file (default: <path>/.ctx-snap.yaml).")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    args = build_parser().parse_args(argv)
    cli_values: dict[str, Any] = {
        "output": args.output,
        "max_size_kb": args.max_size_kb,
        "ignore": args.ignore,
        "include": args.include,
        "quiet": args.quiet,
        "json_output": args.json,
        "respect_gitignore": args.respect_gitignore,
        "log_file": args.log_file,
    }
    return Settings.resolve(
        root=Path(args.path or "."),
        cli_values={k: v for k, v in cli_values.items() if v is not None},
        config=Path(args.config) if args.config else None,
    )


def snapshot(settings: Settings) -> SnapshotMetadata:
    """Run the selection pipeline: traverse, filter, read, order.

    Args:
        settings (Settings): the run configuration

    Raises:
        TraversalError: if the root cannot be traversed

    Returns:
        SnapshotMetadata: the ordered records and their aggregates
    """
    root = Path(os.path.abspath(settings.root))
    files = walk_files(
        root,
        respect_vcs_ignore=settings.respect_gitignore,
        exclude=[settings.output],
    )
    selected = apply_filters(
        files,
        root,
        ignores=settings.ignore,
        includes=settings.include,
        max_size_kb=settings.max_size_kb,
    )
    recs = order_recs(make_recs(selected, root))
    return SnapshotMetadata(root=str(settings.root), records=tuple(recs))


def render(meta: SnapshotMetadata, *, json_output: bool) -> str:
    """Serialize a snapshot with the JSON or markdown renderer."""
    return build_json(meta) if json_output else build_markdown(meta)


def write_output(path: Path, content: str) -> None:
    """Write the rendered document to `path`.

    Raises:
        OutputWriteError: if the file cannot be created or written
    """
    try:
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as e:
        raise OutputWriteError(path=path, message=f"Failed to create output file: {e}") from e


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = parse_args(argv)
        setup_logging(settings.log_file)
        set_quiet(settings.quiet)

        if not settings.quiet:
            print(f"Snapping context from: {settings.root}")

        meta = snapshot(settings)
        if not settings.quiet:
            print(f"Found {meta.total_files} files")

        write_output(settings.output, render(meta, json_output=settings.json_output))
    except CtxSnapError as e:
        logger.error("ctx-snap failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not settings.quiet:
        print(f"Context saved to: {settings.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
