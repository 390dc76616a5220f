"""Configuration for bench-history"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .state_paths import resolve_history_path, resolve_state_dir

DEFAULT_SUITE = "Benchmark"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Settings:
    """Settings read from the environment"""

    history_file: Path
    suite: str
    repo_url: str
    state_dir: Path
    fetch_timeout: int
    log_level: str

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        """Load settings from environment variables (and a .env file if present)"""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        def parse_positive_int(name: str, value: Optional[str], default: int) -> int:
            if value is None or not value.strip():
                return default
            try:
                parsed = int(value)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if parsed <= 0:
                raise ValueError(f"{name} must be positive, got {parsed}")
            return parsed

        state_dir = resolve_state_dir()
        history_file = resolve_history_path(os.getenv("BENCH_HISTORY_FILE"))

        suite = os.getenv("BENCH_HISTORY_SUITE", DEFAULT_SUITE).strip()
        if not suite:
            raise ValueError("BENCH_HISTORY_SUITE cannot be empty")

        repo_url = os.getenv("BENCH_HISTORY_REPO_URL", "").strip()

        fetch_timeout = parse_positive_int(
            "BENCH_HISTORY_FETCH_TIMEOUT", os.getenv("BENCH_HISTORY_FETCH_TIMEOUT"), 30
        )

        log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}, got {log_level!r}")

        return cls(
            history_file=history_file,
            suite=suite,
            repo_url=repo_url,
            state_dir=state_dir,
            fetch_timeout=fetch_timeout,
            log_level=log_level,
        )

    @property
    def log_dir(self) -> Path:
        return self.state_dir / "logs"
