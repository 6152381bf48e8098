from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ctx_snap.config import (
    FileRecord,
    Language,
    SnapshotMetadata,
    count_lines,
    estimate_tokens,
    guess_language,
)


def _rec(rel: str, content: str) -> FileRecord:
    return FileRecord(
        path=Path("/repo") / rel,
        relative_path=rel,
        size_bytes=len(content.encode("utf-8")),
        line_count=count_lines(content),
        language=str(guess_language(Path(rel))),
        content=content,
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", 0),
        ("one", 1),
        ("one\n", 1),
        ("one\ntwo", 2),
        ("one\ntwo\n", 2),
        ("\n\n", 2),
        ("a\r\nb\r\n", 2),
    ],
)
def test_count_lines(text: str, expected: int) -> None:
    assert count_lines(text) == expected


@pytest.mark.unit
def test_estimate_tokens_counts_utf8_bytes() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 0
    assert estimate_tokens("fn main() {}\n") == 3
    # "é" is two bytes in UTF-8
    assert estimate_tokens("éé") == 1


@pytest.mark.unit
def test_guess_language_uses_lowercased_suffix() -> None:
    assert guess_language(Path("src/main.rs")) is Language.RUST
    assert guess_language(Path("README.MD")) is Language.MARKDOWN
    assert guess_language(Path("include/vec.hpp")) is Language.CPP
    assert guess_language(Path("Makefile")) is Language.UNKNOWN
    assert guess_language(Path("notes.txt")) == ""


@pytest.mark.unit
def test_file_record_token_estimate_is_derived_from_content() -> None:
    rec = _rec("test.rs", "fn main() {}\n")

    assert rec.token_estimate == 3
    assert rec.language == "rust"
    assert rec.line_count == 1


@pytest.mark.unit
def test_snapshot_metadata_totals_match_records() -> None:
    recs = (_rec("a.py", "x" * 10), _rec("b.py", "y" * 7), _rec("c.txt", ""))

    meta = SnapshotMetadata(root=".", records=recs)

    assert meta.total_files == 3
    assert meta.estimated_tokens == 10 // 4 + 7 // 4 + 0
    assert meta.generated_at.tzinfo is not None


@pytest.mark.unit
def test_snapshot_metadata_rejects_duplicate_relative_paths() -> None:
    with pytest.raises(ValidationError):
        SnapshotMetadata(root=".", records=(_rec("a.py", "1"), _rec("a.py", "2")))
