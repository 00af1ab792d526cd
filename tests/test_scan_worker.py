"""
Tests for Scan Worker — end-to-end scans, scoring, CI verdict and fix round trips.
"""

import asyncio
import json

import pytest

from repodoctor.config import settings
from repodoctor.errors import InvalidYamlError, UnknownPresetError, UnreadableRootError
from repodoctor.models.project_models import Framework
from repodoctor.models.score_models import Grade
from repodoctor.workers.scan_worker import ScanWorker, build_audit_entry


@pytest.fixture
def worker():
    return ScanWorker(cache_enabled=False)


def test_weak_repo_scenario(make_repo, weak_repo_files, worker):
    result = asyncio.run(worker.scan(make_repo(weak_repo_files)))

    assert result.framework.framework is Framework.GENERIC
    found = {i.id for i in result.issues}
    assert {"STR-002", "STR-003", "SEC-001", "TST-001"} <= found
    # Balanced reports Low and above
    assert not {"GEN-001", "GEN-003", "DOC-003", "DOC-005"} & found

    secret = next(i for i in result.issues if i.id == "SEC-001")
    assert (secret.file, secret.line) == ("config.php", 3)
    assert result.issues[0].id == "SEC-001"

    assert result.health_score.total == 88
    assert result.health_score.grade is Grade.B
    assert result.ci_passed is False
    assert result.files_scanned == 2
    assert result.preset == "balanced"


def test_healthy_repo_scores_100(make_repo, healthy_python_files, worker):
    result = asyncio.run(worker.scan(make_repo(healthy_python_files)))
    assert result.framework.framework is Framework.PYTHON
    assert result.issues == []
    assert result.health_score.total == 100
    assert result.health_score.grade is Grade.A
    assert result.ci_passed is True


def test_relaxed_preset_hides_minor_issues(make_repo, weak_repo_files, worker):
    result = asyncio.run(worker.scan(make_repo(weak_repo_files), preset="relaxed"))
    assert {i.id for i in result.issues} == {"SEC-001", "TST-001"}
    # fail_on critical
    assert result.ci_passed is False


def test_strict_preset_min_score(make_repo, weak_repo_files, worker):
    overrides = {"ignore": {"rules": ["SEC-*", "TST-*"]}}
    result = asyncio.run(worker.scan(make_repo(weak_repo_files), preset="strict", overrides=overrides))
    # STR-002 and STR-003 are Medium, which strict fails on
    assert result.ci_passed is False


def test_repo_config_is_applied(make_repo, weak_repo_files, worker):
    files = dict(weak_repo_files)
    files[".repodoctor.yml"] = "ignore:\n  paths:\n    - config.php\n"
    result = asyncio.run(worker.scan(make_repo(files)))
    assert "SEC-001" not in {i.id for i in result.issues}


def test_repo_config_can_be_skipped(make_repo, weak_repo_files, worker):
    files = dict(weak_repo_files)
    files[".repodoctor.yml"] = "ignore:\n  paths:\n    - config.php\n"
    result = asyncio.run(worker.scan(make_repo(files), use_repo_config=False))
    assert "SEC-001" in {i.id for i in result.issues}


def test_snapshot_ignore_paths(make_repo, weak_repo_files, worker):
    result = asyncio.run(worker.scan(make_repo(weak_repo_files), ignore_paths=["*.php"]))
    assert result.files_scanned == 0
    assert "SEC-001" not in {i.id for i in result.issues}


def test_invalid_repo_config_aborts(make_repo, worker):
    root = make_repo({".repodoctor.yml": "ignore: [\n"})
    with pytest.raises(InvalidYamlError):
        asyncio.run(worker.scan(root))


def test_unknown_preset_aborts(make_repo, worker):
    with pytest.raises(UnknownPresetError):
        asyncio.run(worker.scan(make_repo({"a.txt": ""}), preset="nope"))


def test_missing_root_aborts(tmp_path, worker):
    with pytest.raises(UnreadableRootError):
        asyncio.run(worker.scan(tmp_path / "missing"))


def test_scan_writes_cache_when_enabled(make_repo, weak_repo_files):
    root = make_repo(weak_repo_files)
    cached_worker = ScanWorker(cache_enabled=True)
    first = asyncio.run(cached_worker.scan(root))
    cache_file = root / settings.cache_filename
    assert cache_file.is_file()
    assert json.loads(cache_file.read_text())["entries"]

    second = asyncio.run(cached_worker.scan(root))
    assert first.issues == second.issues
    assert first.files_scanned == second.files_scanned


# --- Fix round trip ---


def test_fix_round_trip(make_repo, weak_repo_files, worker):
    root = make_repo(weak_repo_files)
    result, project = asyncio.run(worker.scan_project(root))
    plan = worker.plan_fixes(result.issues, project)
    assert "+++ b/.gitignore" in worker.preview(plan)
    assert not (root / ".gitignore").exists()

    report = asyncio.run(worker.apply_fixes(plan))
    assert report.status == "applied"

    rescanned = asyncio.run(worker.scan(root))
    assert "STR-003" not in {i.id for i in rescanned.issues}
    assert rescanned.health_score.total > result.health_score.total


def test_audit_entry_from_result(make_repo, weak_repo_files, worker):
    result = asyncio.run(worker.scan(make_repo(weak_repo_files)))
    entry = build_audit_entry(result)
    assert entry.scan_id == result.scan_id
    assert entry.framework == "generic"
    assert entry.health_score == 88
    assert entry.grade == "B"
    assert entry.issues_found == len(result.issues)


def test_repo_config_extends_local_preset(make_repo, weak_repo_files, worker, tmp_path, monkeypatch):
    files = dict(weak_repo_files)
    files["team.yml"] = "extends: balanced\nignore:\n  rules:\n    - SEC-001\n"
    files[".repodoctor.yml"] = "extends: team.yml\n"
    root = make_repo(files)
    monkeypatch.chdir(tmp_path)
    result = asyncio.run(worker.scan(root))
    assert "SEC-001" not in {i.id for i in result.issues}
