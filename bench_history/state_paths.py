"""Shared helpers for resolving bench-history state paths."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

DEFAULT_STATE_DIR = Path.home() / ".local" / "state" / "bench-history"

DEFAULT_HISTORY_FILE = "data.js"


def resolve_state_dir(base_dir: Optional[Path] = None) -> Path:
    """Resolve the base state directory.

    Handles both ~ and $HOME/$VAR expansion for compatibility with
    systemd EnvironmentFile and shell scripts.
    """
    if base_dir is not None:
        return Path(os.path.expandvars(str(base_dir))).expanduser()
    env_dir = os.getenv("BENCH_HISTORY_STATE_DIR")
    if env_dir:
        return Path(os.path.expandvars(env_dir)).expanduser()
    return DEFAULT_STATE_DIR


def resolve_history_path(value: Optional[str] = None, base_dir: Optional[Path] = None) -> Path:
    """Resolve the history file path; defaults to data.js in the state dir."""
    if value:
        return Path(os.path.expandvars(value)).expanduser()
    return resolve_state_dir(base_dir) / DEFAULT_HISTORY_FILE
