from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

DEFAULT_OUTPUT = "context.md"
DEFAULT_MAX_SIZE_KB = 100
DEFAULT_CONFIG_FILE = ".ctx-snap.yaml"
BINARY_SNIFF_BYTES = 512
CHARS_PER_TOKEN = 4


class Language(StrEnum):
    """Code fence language tags, keyed off file extensions.

    `UNKNOWN` renders as an unlabeled fence.
    """

    RUST = auto()
    PYTHON = auto()
    JAVASCRIPT = auto()
    TYPESCRIPT = auto()
    GO = auto()
    JAVA = auto()
    C = auto()
    CPP = auto()
    BASH = auto()
    JSON = auto()
    YAML = auto()
    TOML = auto()
    MARKDOWN = auto()
    HTML = auto()
    CSS = auto()
    SQL = auto()
    UNKNOWN = ""


EXT2LANG: dict[str, Language] = {
    ".bash": Language.BASH,
    ".c": Language.C,
    ".cc": Language.CPP,
    ".cjs": Language.JAVASCRIPT,
    ".cpp": Language.CPP,
    ".css": Language.CSS,
    ".cxx": Language.CPP,
    ".go": Language.GO,
    ".h": Language.CPP,
    ".hpp": Language.CPP,
    ".htm": Language.HTML,
    ".html": Language.HTML,
    ".java": Language.JAVA,
    ".js": Language.JAVASCRIPT,
    ".json": Language.JSON,
    ".markdown": Language.MARKDOWN,
    ".md": Language.MARKDOWN,
    ".mjs": Language.JAVASCRIPT,
    ".py": Language.PYTHON,
    ".rs": Language.RUST,
    ".sh": Language.BASH,
    ".sql": Language.SQL,
    ".toml": Language.TOML,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".yaml": Language.YAML,
    ".yml": Language.YAML,
    ".zsh": Language.BASH,
}


def guess_language(path: Path) -> Language:
    """Guess the code fence language of a file from its extension.

    Args:
        path (Path): The file path to guess the language for.

    Returns:
        Language: The matching language, or Language.UNKNOWN.
    """
    return EXT2LANG.get(path.suffix.lower(), Language.UNKNOWN)


def estimate_tokens(text: str) -> int:
    """Approximate the token count of `text` as one token per four UTF-8 bytes."""
    return len(text.encode("utf-8")) // CHARS_PER_TOKEN


def count_lines(text: str) -> int:
    """Count newline-delimited lines; a trailing partial line counts, a trailing newline does not."""
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


def now_local() -> datetime:
    """Return the current local time, timezone-aware."""
    return datetime.now(UTC).astimezone()


class FileRecord(BaseModel):
    """One file that made it through the selection pipeline.

    Attributes:
        path: Absolute path to the file at scan time.
        relative_path: POSIX path relative to the scan root; the display and sort key.
        size_bytes: File size in bytes.
        line_count: Number of lines in the decoded content.
        language: Code fence language tag, empty when unknown.
        content: Full decoded text.
        token_estimate: Approximate token count of `content`.
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute file path")
    relative_path: str = Field(..., description="File path relative to the scan root")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")
    line_count: int = Field(..., ge=0, description="Number of lines")
    language: str = Field(default="", description="Code fence language tag")
    content: str = Field(..., description="Decoded file content")

    @computed_field
    @property
    def token_estimate(self) -> int:
        """Approximate token count of the content."""
        return estimate_tokens(self.content)


class SnapshotMetadata(BaseModel):
    """Aggregate view over the records of one run.

    `total_files` and `estimated_tokens` are derived from `records`, so both
    renderers always report the same totals for the same snapshot.
    """

    model_config = ConfigDict(frozen=True)

    root: str = Field(..., description="Scan root as given by the user")
    generated_at: datetime = Field(default_factory=now_local, description="Generation timestamp")
    records: tuple[FileRecord, ...] = Field(default=(), description="Ordered file records")

    @computed_field
    @property
    def total_files(self) -> int:
        """Number of emitted records."""
        return len(self.records)

    @computed_field
    @property
    def estimated_tokens(self) -> int:
        """Sum of the per-record token estimates."""
        return sum(rec.token_estimate for rec in self.records)

    @model_validator(mode="after")
    def _unique_relative_paths(self) -> SnapshotMetadata:
        seen: set[str] = set()
        for rec in self.records:
            if rec.relative_path in seen:
                msg = f"duplicate relative path in snapshot: {rec.relative_path}"
                raise ValueError(msg)
            seen.add(rec.relative_path)
        return self
