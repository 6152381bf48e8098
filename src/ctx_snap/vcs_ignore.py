"""Version-control ignore rules: `.gitignore` files, the global excludes file and `.git/info/exclude`.

Rules are kept as a stack of layers, each scoped to the directory its file
lives in. Layers are consulted from the lowest priority (global excludes) to
the highest (the deepest `.gitignore`); the last layer with a matching
pattern decides, so `!pattern` negations in a nested file can re-include a
path ignored further up.
"""

from __future__ import annotations

import os
import subprocess  # noqa: S404
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from ctx_snap.logging import logger

GITIGNORE = ".gitignore"


@dataclass(frozen=True)
class IgnoreLayer:
    """Patterns of a single ignore file, relative to `base` (POSIX, "" for the root)."""

    base: str
    spec: pathspec.GitIgnoreSpec

    def check(self, rel: str, *, is_dir: bool) -> bool | None:
        """Return True/False when a pattern decides for `rel`, None when nothing matches."""
        if self.base:
            prefix = self.base + "/"
            if not rel.startswith(prefix):
                return None
            rel = rel[len(prefix) :]
        candidate = rel + "/" if is_dir else rel
        return self.spec.check_file(candidate).include


@dataclass(frozen=True)
class VcsIgnore:
    """Immutable stack of ignore layers in effect for one directory."""

    layers: tuple[IgnoreLayer, ...] = field(default_factory=tuple)

    def is_ignored(self, rel: str, *, is_dir: bool = False) -> bool:
        """Check whether the root-relative POSIX path `rel` is ignored."""
        ignored = False
        for layer in self.layers:
            decision = layer.check(rel, is_dir=is_dir)
            if decision is not None:
                ignored = decision
        return ignored

    def with_ignore_file(self, path: Path, base: str) -> VcsIgnore:
        """Return a new stack extended with the rules of `path`, if it exists and has any."""
        lines = read_ignore_lines(path)
        if not lines:
            return self
        return VcsIgnore((*self.layers, IgnoreLayer(base, pathspec.GitIgnoreSpec.from_lines(lines))))


def read_ignore_lines(path: Path) -> list[str]:
    """Read the lines of an ignore file, returning an empty list if it is missing or unreadable."""
    try:
        return path.read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError:
        return []


def global_excludes_file(root: Path) -> Path | None:
    """Locate the global excludes file the way git does.

    `core.excludesFile` wins when set; otherwise `$XDG_CONFIG_HOME/git/ignore`
    (or `~/.config/git/ignore`).

    Args:
        root (Path): directory whose git configuration should be consulted

    Returns:
        Path | None: the excludes file path, or None if no candidate can be derived
    """
    try:
        out = subprocess.run(
            ["git", "config", "--path", "--get", "core.excludesFile"],  # noqa: S607
            cwd=str(root),
            text=True,
            capture_output=True,
            check=False,
        )
        value = out.stdout.strip()
        if out.returncode == 0 and value:
            return Path(value).expanduser()
    except OSError as e:
        logger.info("git config unavailable: %s", e)

    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg) / "git" / "ignore"
    try:
        return Path.home() / ".config" / "git" / "ignore"
    except RuntimeError:
        return None


def load_root_rules(root: Path) -> VcsIgnore:
    """Build the rule stack for the scan root.

    Lowest priority first: global excludes file, `.git/info/exclude`, then the
    root `.gitignore`. Nested `.gitignore` files are layered on during traversal.

    Args:
        root (Path): the scan root

    Returns:
        VcsIgnore: the rules in effect at the root directory
    """
    rules = VcsIgnore()
    global_file = global_excludes_file(root)
    if global_file is not None:
        rules = rules.with_ignore_file(global_file, "")
    rules = rules.with_ignore_file(root / ".git" / "info" / "exclude", "")
    return rules.with_ignore_file(root / GITIGNORE, "")
