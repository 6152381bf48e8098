from __future__ import annotations

import functools
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from ctx_snap.config import BINARY_SNIFF_BYTES, FileRecord, count_lines, guess_language
from ctx_snap.exceptions import FileDecodeError, TraversalError
from ctx_snap.logging import logger
from ctx_snap.vcs_ignore import GITIGNORE, VcsIgnore, load_root_rules

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def file_language(path: Path) -> str:
    """Return the code fence language tag for `path`, or "" if unknown."""
    return str(guess_language(path))


def is_likely_binary(path: Path) -> bool:
    """Check if a file is likely binary.

    A file is binary when a null byte shows up in its first 512 bytes. Files
    that cannot be opened are reported as text so that the read step, not this
    check, is what drops them.

    Args:
        path (Path): the file path to check

    Returns:
        bool: True if the file is likely binary, False otherwise
    """
    try:
        with path.open("rb") as f:
            chunk = f.read(BINARY_SNIFF_BYTES)
    except OSError:
        return False
    return b"\x00" in chunk


def walk_files(
    root: Path,
    *,
    respect_vcs_ignore: bool = True,
    exclude: Iterable[Path] = (),
) -> list[Path]:
    """Walk the directory tree rooted at `root` and return every candidate file.

    Directories are never returned and symlinked directories are not followed.
    Hidden files are candidates like any other. Unreadable subdirectories are
    skipped.

    Args:
        root (Path): the root directory to walk
        respect_vcs_ignore (bool): honor `.gitignore` files, the global excludes
            file and `.git/info/exclude`, and skip the `.git` directory
        exclude (Iterable[Path]): files that must never be returned, e.g. the output file

    Raises:
        TraversalError: if `root` does not exist, is not a directory or cannot be read

    Returns:
        list[Path]: candidate files, in filesystem order
    """
    if not root.is_dir():
        raise TraversalError(root=root)
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise TraversalError(root=root, message=f"Cannot read the scan root: {e.strerror}") from e

    excluded = {p.resolve() for p in exclude}
    root_rules = load_root_rules(root) if respect_vcs_ignore else None
    # rules inherited by subdirectories os.walk has yet to visit
    rules_by_dir: dict[str, VcsIgnore] = {}

    results: list[Path] = []
    for current, dirs, files in os.walk(root):
        cur = Path(current)
        rel_dir = relpath(cur, root) if cur != root else ""
        rules: VcsIgnore | None = None
        if root_rules is not None:
            rules = rules_by_dir.pop(current, root_rules)
            if rel_dir:
                rules = rules.with_ignore_file(cur / GITIGNORE, rel_dir)

        kept: list[str] = []
        for d in dirs:
            if rules is not None:
                if d == ".git":
                    continue
                if rules.is_ignored(_join(rel_dir, d), is_dir=True):
                    continue
                sub = os.path.join(current, d)
                if not os.path.islink(sub):
                    rules_by_dir[sub] = rules
            kept.append(d)
        dirs[:] = kept

        for f in files:
            if rules is not None and rules.is_ignored(_join(rel_dir, f)):
                continue
            p = cur / f
            if not p.is_file():
                continue
            if excluded and p.resolve() in excluded:
                continue
            results.append(p)
    return results


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


def normalize_patterns(patterns: Sequence[str]) -> list[str]:
    """Normalize a sequence of user patterns.

    Strips whitespace, replaces backslashes with forward slashes and drops
    empty patterns.

    Args:
        patterns (Sequence[str]): the patterns to normalize

    Returns:
        list[str]: the normalized patterns
    """
    out: list[str] = []
    for pat in patterns:
        p2 = (pat or "").strip()
        if not p2:
            continue
        out.append(p2.replace("\\", "/"))
    return out


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a user pattern into a regex searched anywhere in a path.

    `**` spans path segments, `*` stays inside one segment, `?` matches one
    non-separator character; everything else is literal. A pattern without
    wildcards therefore behaves as plain substring containment.

    Args:
        pattern (str): a normalized pattern

    Returns:
        re.Pattern[str]: the compiled regex
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(c))
        i += 1
    return re.compile("".join(parts))


def matches_pattern(rel: str, pattern: str) -> bool:
    """Check if a POSIX relative path contains a match of `pattern`."""
    return compile_pattern(pattern).search(rel) is not None


def match_any(rel: str, patterns: Sequence[str]) -> bool:
    """Check if a relative path matches any of the provided patterns.

    Args:
        rel (str): the relative path to check
        patterns (Sequence[str]): normalized patterns to match against

    Returns:
        bool: True if `rel` matches any pattern in `patterns`, False otherwise
    """
    return any(matches_pattern(rel, p) for p in patterns)


def apply_filters(
    files: Sequence[Path],
    root: Path,
    *,
    ignores: Sequence[str] = (),
    includes: Sequence[str] = (),
    max_size_kb: int,
) -> list[Path]:
    """Apply the filter chain to candidate files.

    Checks run in a fixed order: binary content, ignore patterns, include
    patterns (only when some are given), then the size ceiling. An ignored
    file is dropped even when it also matches an include pattern.

    Args:
        files (Sequence[Path]): candidate files (absolute paths)
        root (Path): the scan root used to relativize paths for pattern matching
        ignores (Sequence[str]): patterns whose match drops a file
        includes (Sequence[str]): patterns of which at least one must match, if any are given
        max_size_kb (int): files whose size in whole KB exceeds this are dropped

    Returns:
        list[Path]: the surviving files, in input order
    """
    ign = normalize_patterns(ignores)
    inc = normalize_patterns(includes)

    out: list[Path] = []
    for f in files:
        if is_likely_binary(f):
            continue
        r = relpath(f, root)
        if ign and match_any(r, ign):
            continue
        if inc and not match_any(r, inc):
            continue
        try:
            size_kb = f.stat().st_size // 1024
        except OSError as e:
            logger.warning("Skipping unreadable file: %s (%s)", r, e)
            continue
        if size_kb > max_size_kb:
            logger.info("Skipping large file: %s (%skb)", r, size_kb)
            continue
        out.append(f)
    return out


def read_text_strict(path: Path) -> str:
    """Read a whole file as UTF-8 text.

    Args:
        path (Path): the file path to read

    Raises:
        FileDecodeError: if the file cannot be read or is not valid UTF-8

    Returns:
        str: the decoded content
    """
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileDecodeError(path=path, message=str(e)) from e


def make_record(path: Path, root: Path) -> FileRecord:
    """Read `path` and build its FileRecord.

    Raises:
        FileDecodeError: if the file cannot be decoded as text
    """
    content = read_text_strict(path)
    return FileRecord(
        path=path.absolute(),
        relative_path=relpath(path, root),
        size_bytes=len(content.encode("utf-8")),
        line_count=count_lines(content),
        language=file_language(path),
        content=content,
    )


def make_recs(files: Sequence[Path], root: Path) -> list[FileRecord]:
    """Create FileRecord objects for the given files, dropping unreadable ones.

    Args:
        files (Sequence[Path]): the files to read (absolute paths)
        root (Path): the scan root used for `relative_path`

    Returns:
        list[FileRecord]: one record per readable file, in input order
    """
    recs: list[FileRecord] = []
    for f in files:
        try:
            recs.append(make_record(f, root))
        except FileDecodeError as e:
            logger.warning("Failed to read %s: %s", relpath(f, root), e.message)
    return recs


def order_recs(recs: Sequence[FileRecord]) -> list[FileRecord]:
    """Order file records by relative path, in plain codepoint order.

    Args:
        recs (Sequence[FileRecord]): the file records to order

    Returns:
        list[FileRecord]: the ordered list of file records
    """
    return sorted(recs, key=lambda r: r.relative_path)
