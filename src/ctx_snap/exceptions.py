from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CtxSnapError(Exception):
    """Base exception for errors in the ctx_snap package."""

    message: str = "ctx-snap failed."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class TraversalError(CtxSnapError):
    """Raised when the scan root cannot be traversed."""

    root: Path = Path()
    message: str = "The scan root does not exist or is not a directory."

    def __str__(self) -> str:
        return f"{self.message} ({self.root})"


@dataclass(frozen=True)
class OutputWriteError(CtxSnapError):
    """Raised when the output file cannot be created or written."""

    path: Path = Path()
    message: str = "Failed to create output file."

    def __str__(self) -> str:
        return f"{self.message} ({self.path})"


@dataclass(frozen=True)
class RenderError(CtxSnapError):
    """Raised when the snapshot cannot be serialized."""

    message: str = "Failed to serialize the snapshot."


@dataclass(frozen=True)
class ConfigurationError(CtxSnapError):
    """Raised when a configuration source is invalid."""

    source: str = ""
    message: str = "Invalid configuration."

    def __str__(self) -> str:
        return f"{self.message} ({self.source})" if self.source else self.message


@dataclass(frozen=True)
class FileDecodeError(CtxSnapError):
    """Raised when a file cannot be read as UTF-8 text."""

    path: Path = Path()
    message: str = "The file is not valid UTF-8 text."
