"""
Tests for File Cache — fingerprint lookups, persistence and corruption handling.
"""

import json

from repodoctor.cache.file_cache import SCHEMA_VERSION, FileCache
from repodoctor.core.analyzer_registry import ANALYZER_REGISTRY
from repodoctor.core.analyzers.base import CancelToken
from repodoctor.core.project import Project
from repodoctor.core.ruleset import resolve_ruleset
from repodoctor.models.issue_models import Category, Issue, Severity


def _issue(rule_id="SEC-001", file="a.py"):
    return Issue(
        id=rule_id,
        analyzer="security",
        category=Category.SECURITY,
        severity=Severity.CRITICAL,
        title="secret",
        file=file,
        line=1,
    )


def test_put_get_roundtrip():
    cache = FileCache()
    digest = FileCache.hash_content("password = 'x'")
    cache.put("security:1000", "a.py", digest, [_issue()])
    assert cache.get("security:1000", "a.py", digest) == [_issue()]
    assert cache.stats()["hits"] == 1


def test_changed_content_misses():
    cache = FileCache()
    cache.put("s", "a.py", FileCache.hash_content("one"), [_issue()])
    assert cache.get("s", "a.py", FileCache.hash_content("two")) is None
    assert cache.misses == 1


def test_scope_isolates_entries():
    cache = FileCache()
    digest = FileCache.hash_content("x")
    cache.put("security:1000", "a.py", digest, [_issue()])
    assert cache.get("security:50", "a.py", digest) is None


def test_put_replaces_older_versions():
    cache = FileCache()
    cache.put("s", "a.py", FileCache.hash_content("one"), [])
    cache.put("s", "a.py", FileCache.hash_content("two"), [_issue()])
    assert cache.size == 1


def test_expired_entries_miss():
    cache = FileCache(ttl_seconds=-1)
    digest = FileCache.hash_content("x")
    cache.put("s", "a.py", digest, [])
    assert cache.get("s", "a.py", digest) is None


def test_invalidate_and_clear():
    cache = FileCache()
    cache.put("s", "a.py", FileCache.hash_content("x"), [])
    cache.put("t", "a.py", FileCache.hash_content("x"), [])
    cache.put("s", "b.py", FileCache.hash_content("y"), [])
    assert cache.invalidate("a.py") == 2
    cache.clear()
    assert cache.size == 0


# --- Persistence ---


def test_save_and_reload(tmp_path):
    path = tmp_path / "cache.json"
    cache = FileCache(path)
    digest = FileCache.hash_content("x")
    cache.put("s", "a.py", digest, [_issue()])
    assert cache.save() is True
    # Nothing changed since the last save
    assert cache.save() is False
    assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    reloaded = FileCache(path)
    reloaded.load()
    assert reloaded.get("s", "a.py", digest) == [_issue()]


def test_schema_mismatch_discarded(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"schema_version": SCHEMA_VERSION + 1, "entries": {"s|a.py|h": {}}}))
    cache = FileCache(path)
    cache.load()
    assert cache.size == 0


def test_corrupt_file_discarded(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{ not json")
    cache = FileCache(path)
    cache.load()
    assert cache.size == 0
    # The next save replaces the corrupt file
    assert cache.save() is True
    assert json.loads(path.read_text())["schema_version"] == SCHEMA_VERSION


def test_malformed_entry_discards_everything(tmp_path):
    path = tmp_path / "cache.json"
    payload = {
        "schema_version": SCHEMA_VERSION,
        "entries": {
            "s|a.py|h1": {"timestamp": 1e12, "issues": []},
            "s|b.py|h2": {"timestamp": 1e12, "issues": [{"id": "X"}]},
        },
    }
    path.write_text(json.dumps(payload))
    cache = FileCache(path)
    cache.load()
    assert cache.size == 0


# --- Cache in a scan ---


def test_cached_scan_matches_uncached(make_repo, weak_repo_files):
    root = make_repo(weak_repo_files)
    ruleset = resolve_ruleset("balanced")
    security = ANALYZER_REGISTRY["security"]

    uncached = security.analyze(Project.load(root), ruleset, CancelToken())

    cache = FileCache.for_root(root)
    first = security.analyze(Project.load(root, cache=cache), ruleset, CancelToken())
    assert cache.save() is True

    warm = FileCache.for_root(root)
    second = security.analyze(Project.load(root, cache=warm), ruleset, CancelToken())
    assert uncached == first == second
    assert warm.hits > 0
    assert warm.misses == 0
