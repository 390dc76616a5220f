from __future__ import annotations

import copy
import json
import logging

import pytest


def _person() -> dict:
    return {"email": "i@rmw.link", "name": "gcxfd", "username": "gcxfd"}


def make_entry(
    commit_id: str,
    date: int,
    benches: list[tuple[str, int, str]],
    *,
    message: str = "bench",
    timestamp: str = "2022-07-18T18:00:50+08:00",
) -> dict:
    """Entry in wire shape; benches are (name, value, range) triples in ns/iter."""
    return {
        "commit": {
            "author": _person(),
            "committer": _person(),
            "distinct": True,
            "id": commit_id,
            "message": message,
            "timestamp": timestamp,
            "tree_id": "33a9525885ca48daff07fc8af96dcb4ad15f769b",
            "url": f"https://github.com/rmw-lib/simpledb/commit/{commit_id}",
        },
        "date": date,
        "tool": "cargo",
        "benches": [
            {"name": name, "value": value, "range": rng, "unit": "ns/iter"}
            for name, value, rng in benches
        ],
    }


EXAMPLE_HISTORY = {
    "lastUpdate": 1658139911083,
    "repoUrl": "https://github.com/rmw-lib/simpledb",
    "entries": {
        "Benchmark": [
            make_entry(
                "e3c9b72fd9dd1d272765982aff6451bd6f2067b5",
                1658139893998,
                [("map_put", 18764, "± 1717"), ("map_get", 17122, "± 182")],
                message="cargo +nightly clippy && use criterion for benchmark",
            ),
            make_entry(
                "608812ea8b23956cb5bcbc7aabf89eb232054370",
                1658139909835,
                [("map_put", 19285, "± 1677"), ("map_get", 18701, "± 398")],
                message="🔶",
                timestamp="2022-07-18T18:00:17+08:00",
            ),
        ]
    },
}


@pytest.fixture
def example_history() -> dict:
    """The two-entry history in wire shape (fresh copy per test)."""
    return copy.deepcopy(EXAMPLE_HISTORY)


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def example_data_js(example_history) -> str:
    """The two-entry history as a published data.js script."""
    return "window.BENCHMARK_DATA = " + json.dumps(example_history, indent=2, ensure_ascii=False)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo handlers the CLI installs so caplog keeps working across tests."""
    yield
    logger = logging.getLogger("bench_history")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep state, logs and .env lookups inside the test's tmp dir."""
    monkeypatch.setenv("BENCH_HISTORY_STATE_DIR", str(tmp_path / "state"))
    for name in (
        "BENCH_HISTORY_FILE",
        "BENCH_HISTORY_SUITE",
        "BENCH_HISTORY_REPO_URL",
        "BENCH_HISTORY_FETCH_TIMEOUT",
        "LOG_LEVEL",
    ):
        # set first so teardown also removes values a .env file loaded
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
