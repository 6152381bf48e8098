from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import pytest

from ctx_snap import vcs_ignore
from ctx_snap.logging import LOGGER_NAME, setup_logging

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep the user's git config, environment and working directory out of the tests."""
    monkeypatch.setattr(vcs_ignore, "global_excludes_file", lambda _root: None)
    for key in [k for k in os.environ if k.startswith("CTX_SNAP_")]:
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield
    setup_logging()
    logging.getLogger(LOGGER_NAME).setLevel(logging.NOTSET)
