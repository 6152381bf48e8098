from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING, Any

from ctx_snap.exceptions import RenderError

if TYPE_CHECKING:
    from ctx_snap.config import FileRecord, SnapshotMetadata

MARKDOWN_TITLE = "# Project Context Snapshot"
FENCE = "```"


def format_timestamp(meta: SnapshotMetadata) -> str:
    """Human-readable generation time used in the markdown header."""
    return meta.generated_at.strftime("%Y-%m-%d %H:%M:%S")


def build_markdown(meta: SnapshotMetadata) -> str:
    """Build a markdown string representing the snapshot.

    The document holds a header (generation time, root, file count, token
    estimate), a flat listing of every file with its line count, and one
    fenced section per file with its full content. Content is not escaped: a
    file containing a fence sequence can break the visual rendering.

    Args:
        meta (SnapshotMetadata): the ordered records and their aggregates

    Returns:
        str: the generated markdown document
    """
    out = io.StringIO()
    out.write(f"{MARKDOWN_TITLE}\n\n")
    out.write(f"**Generated:** {format_timestamp(meta)}\n")
    out.write(f"**Root:** `{meta.root}`\n")
    out.write(f"**Total files:** {meta.total_files}\n")
    out.write(f"**Estimated tokens:** ~{meta.estimated_tokens}\n\n")

    out.write("## Directory Structure\n\n")
    out.write(f"{FENCE}\n")
    for rec in meta.records:
        out.write(f"{rec.relative_path} ({rec.line_count} lines)\n")
    out.write(f"{FENCE}\n\n")

    out.write("## File Contents\n\n")
    for rec in meta.records:
        out.write(f"### File: `{rec.relative_path}` ({rec.line_count} lines)\n\n")
        out.write(f"{FENCE}{rec.language}\n")
        out.write(rec.content)
        if not rec.content.endswith("\n"):
            out.write("\n")
        out.write(f"{FENCE}\n\n")

    return out.getvalue()


def file_entry(rec: FileRecord) -> dict[str, Any]:
    """Serialize one record to its JSON entry."""
    return {
        "path": str(rec.path),
        "relative_path": rec.relative_path,
        "lines": rec.line_count,
        "size_bytes": rec.size_bytes,
        "language": rec.language,
        "content": rec.content,
    }


def build_json(meta: SnapshotMetadata) -> str:
    """Build a JSON document representing the snapshot.

    Args:
        meta (SnapshotMetadata): the ordered records and their aggregates

    Raises:
        RenderError: if the document cannot be serialized

    Returns:
        str: the pretty-printed JSON document, newline terminated
    """
    doc = {
        "generated_at": meta.generated_at.isoformat(),
        "root": meta.root,
        "total_files": meta.total_files,
        "estimated_tokens": meta.estimated_tokens,
        "files": [file_entry(rec) for rec in meta.records],
    }
    try:
        return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as e:
        raise RenderError(message=f"Failed to serialize JSON output: {e}") from e
