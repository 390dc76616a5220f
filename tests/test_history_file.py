import json
import os
import stat
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests

from bench_history import HistoryFetchError, ParseError, ValidationError, load, query
from bench_history.history_file import (
    append_to_file,
    fetch_history,
    read_history,
    write_history,
)


class _FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


def test_write_and_read_js(tmp_path, example_data_js):
    document = load(example_data_js)
    path = write_history(tmp_path / "bench" / "data.js", document)

    assert path.read_text(encoding="utf-8").startswith("window.BENCHMARK_DATA = {")
    assert read_history(path) == document


def test_write_json_has_no_wrapper(tmp_path, example_data_js):
    document = load(example_data_js)
    path = write_history(tmp_path / "history.json", document)
    assert json.loads(path.read_text(encoding="utf-8"))["repoUrl"] == document.repo_url


def test_write_leaves_no_temp_files(tmp_path, example_data_js):
    out_dir = tmp_path / "out"
    write_history(out_dir / "data.js", load(example_data_js))
    assert [p.name for p in out_dir.iterdir()] == ["data.js"]


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_history(tmp_path / "missing.js")


def test_read_invalid_file(tmp_path):
    path = tmp_path / "data.js"
    path.write_text("window.BENCHMARK_DATA = nonsense", encoding="utf-8")
    with pytest.raises(ParseError):
        read_history(path)


def test_append_to_existing_file(tmp_path, example_data_js, entry_factory):
    path = tmp_path / "data.js"
    path.write_text(example_data_js, encoding="utf-8")

    document = append_to_file(
        path, "Benchmark", entry_factory("abc1234", 1658140000000, [("map_put", 18000, "± 50")])
    )

    assert document.last_update == 1658140000000
    reloaded = read_history(path)
    assert query(reloaded, "Benchmark", "map_put").values() == [18764, 19285, 18000]


def test_append_creates_file(tmp_path, entry_factory):
    path = tmp_path / "new" / "data.js"
    append_to_file(
        path,
        "Benchmark",
        entry_factory("abc", 10, [("x", 1, "± 0")]),
        repo_url="https://github.com/rmw-lib/simpledb",
    )
    document = read_history(path)
    assert document.repo_url == "https://github.com/rmw-lib/simpledb"
    assert document.last_update == 10


def test_append_without_repo_url_requires_existing_file(tmp_path, entry_factory):
    with pytest.raises(ValueError, match="repo_url"):
        append_to_file(tmp_path / "data.js", "Benchmark", entry_factory("a", 1, [("x", 1, "± 0")]))
    assert not (tmp_path / "data.js").exists()


def test_rejected_append_leaves_file_untouched(tmp_path, example_data_js, entry_factory):
    path = tmp_path / "data.js"
    path.write_text(example_data_js, encoding="utf-8")

    with pytest.raises(ValidationError):
        append_to_file(path, "Benchmark", entry_factory("old", 1, [("map_put", 1, "± 0")]))

    assert path.read_text(encoding="utf-8") == example_data_js


def test_concurrent_file_appends_are_not_lost(tmp_path, entry_factory):
    path = tmp_path / "data.js"
    append_to_file(
        path, "Benchmark", entry_factory("seed", 0, [("x", 0, "± 0")]), repo_url="https://example.com"
    )

    def worker(i):
        # Same date for every writer so none is rejected.
        append_to_file(path, "Benchmark", entry_factory(f"c{i}", 100, [("x", i, "± 0")]))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(20)))

    document = read_history(path)
    assert len(document.entries["Benchmark"]) == 21


def test_fetch_history(monkeypatch, example_data_js):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse(example_data_js.encode("utf-8"))

    monkeypatch.setattr(requests, "get", fake_get)

    document = fetch_history("https://rmw-lib.github.io/simpledb/dev/bench/data.js", timeout=5)

    assert calls == [("https://rmw-lib.github.io/simpledb/dev/bench/data.js", 5)]
    assert len(document.entries["Benchmark"]) == 2


def test_fetch_http_error(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(b"", status_code=404))
    with pytest.raises(HistoryFetchError, match="404"):
        fetch_history("https://example.com/data.js")


def test_fetch_connection_error(monkeypatch):
    def fail(url, timeout):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", fail)
    with pytest.raises(HistoryFetchError, match="refused"):
        fetch_history("https://example.com/data.js")


def test_fetch_invalid_body(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(b"<html></html>"))
    with pytest.raises(ParseError):
        fetch_history("https://example.com/data.js")


def test_write_keeps_existing_file_mode(tmp_path, example_data_js, entry_factory):
    path = tmp_path / "data.js"
    path.write_text(example_data_js, encoding="utf-8")
    os.chmod(path, 0o644)

    append_to_file(path, "Benchmark", entry_factory("abc", 1658140000000, [("map_put", 1, "± 0")]))

    assert oct(stat.S_IMODE(path.stat().st_mode)) == oct(0o644)


def test_new_file_mode_follows_umask(tmp_path, example_data_js):
    previous = os.umask(0o022)
    try:
        path = write_history(tmp_path / "out" / "data.js", load(example_data_js))
    finally:
        os.umask(previous)
    assert oct(stat.S_IMODE(path.stat().st_mode)) == oct(0o644)
