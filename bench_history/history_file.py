"""File and HTTP access to persisted benchmark histories.

Appends take an exclusive lock on a sibling ``.lock`` file for the whole
read -> append -> write cycle, and writes replace the file atomically, so a
reader never sees a partially written history.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Mapping, Optional, Union
import logging
import os
import stat
import tempfile

import requests

from .errors import HistoryFetchError
from .schema import Entry, HistoryDocument
from .store import append, load, new_document, serialize

logger = logging.getLogger(__name__)

try:
    import fcntl  # type: ignore
except Exception:  # pragma: no cover - platform dependent
    fcntl = None


def _lock_path(path: Path) -> Path:
    return path.with_name(f".{path.name}.lock")


@contextmanager
def _history_lock(path: Path):
    lock_path = _lock_path(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = lock_path.open("a+")
    try:
        if fcntl is not None:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        yield
    finally:
        if fcntl is not None:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            except OSError:
                logger.debug(f"Failed to release lock on {lock_path}")
        handle.close()


def _target_mode(path: Path) -> int:
    """Mode the written file should carry: the existing one, else 0666 minus umask."""
    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def read_history(path: Union[str, Path]) -> HistoryDocument:
    """Load a history file (JSON or data.js form)."""
    path = Path(path)
    return load(path.read_bytes())


def write_history(
    path: Union[str, Path],
    document: HistoryDocument,
    wrapper: Optional[bool] = None,
) -> Path:
    """Atomically write ``document`` to ``path``.

    Args:
        path: Destination file.
        document: History to write.
        wrapper: Emit the ``window.BENCHMARK_DATA = `` script form. Defaults
            to True for ``.js`` files and False otherwise.
    """
    path = Path(path)
    if wrapper is None:
        wrapper = path.suffix == ".js"
    data = serialize(document, wrapper=wrapper)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, delete=False, encoding="utf-8"
        ) as tmp_file:
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
            tmp_path = Path(tmp_file.name)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    finally:
        if tmp_path and tmp_path.exists():
            tmp_path.unlink(missing_ok=True)

    logger.debug(f"Wrote history to {path}")
    return path


def append_to_file(
    path: Union[str, Path],
    suite_name: str,
    entry: Union[Entry, Mapping[str, Any]],
    *,
    repo_url: Optional[str] = None,
) -> HistoryDocument:
    """Append one entry to the history stored at ``path``.

    Creates the file when missing, which needs ``repo_url``. The file is not
    rewritten when the append is rejected.

    Returns:
        The updated document.

    Raises:
        ValueError: If the file does not exist and no repo_url was given.
        ParseError: If the existing file is not a valid history.
        ValidationError: If the append is rejected.
    """
    path = Path(path)
    with _history_lock(path):
        if path.exists():
            document = read_history(path)
        else:
            if not repo_url:
                raise ValueError(f"{path} does not exist and no repo_url was given")
            logger.info(f"Creating new history at {path} for {repo_url}")
            document = new_document(repo_url)

        append(document, suite_name, entry)
        write_history(path, document)

    return document


def fetch_history(url: str, timeout: int = 30, session: Optional[requests.Session] = None) -> HistoryDocument:
    """Download a published history (e.g. a gh-pages data.js) and load it.

    Raises:
        HistoryFetchError: On network errors or non-2xx responses.
        ParseError: If the downloaded text is not a valid history.
    """
    http = session or requests
    logger.info(f"Fetching history from {url}")
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to fetch history from {url}: {e}")
        raise HistoryFetchError(f"Failed to fetch {url}: {e}") from e

    return load(response.content)
