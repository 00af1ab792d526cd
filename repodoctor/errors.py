"""
Error taxonomy.

Fatal errors (FsError, ConfigError) abort a scan before any analyzer runs.
AnalyzeError and AnalyzerTimeoutError are recovered by the orchestrator as
synthetic issues. FixError aborts a fix batch and triggers rollback.
"""

from __future__ import annotations


class RepoDoctorError(Exception):
    """Base class for every error RepoDoctor raises on purpose."""

    error_type = "repodoctor_error"

    def to_dict(self) -> dict:
        return {"type": self.error_type, "detail": str(self)}


# ── Filesystem ──


class FsError(RepoDoctorError):
    error_type = "fs_error"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "path": self.path}


class UnreadableRootError(FsError):
    error_type = "unreadable_root"


# ── Configuration ──


class ConfigError(RepoDoctorError):
    error_type = "config_error"

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"{key}: {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "key": self.key}


class InvalidYamlError(ConfigError):
    error_type = "invalid_yaml"


class InvalidRuleError(ConfigError):
    error_type = "invalid_rule"


class UnknownPresetError(ConfigError):
    error_type = "unknown_preset"


class InvalidValueError(ConfigError):
    error_type = "invalid_value"


# ── Analysis ──


class AnalyzeError(RepoDoctorError):
    """Raised by an analyzer that cannot complete; recovered as a Low issue."""

    error_type = "analyze_error"

    def __init__(self, analyzer: str, reason: str) -> None:
        self.analyzer = analyzer
        self.reason = reason
        super().__init__(f"analyzer '{analyzer}' failed: {reason}")


class AnalyzerTimeoutError(AnalyzeError):
    error_type = "analyzer_timeout"

    def __init__(self, analyzer: str, budget_seconds: float) -> None:
        self.budget_seconds = budget_seconds
        self.analyzer = analyzer
        self.reason = f"exceeded its {budget_seconds:g}s budget"
        RepoDoctorError.__init__(self, f"analyzer '{analyzer}' timed out after {budget_seconds:g}s")


class AnalysisCancelled(RepoDoctorError):
    """Raised inside an analyzer thread once its cancel token is set."""

    error_type = "analysis_cancelled"


# ── Fixes ──


class FixError(RepoDoctorError):
    error_type = "fix_error"

    def __init__(self, action_id: str, path: str, reason: str) -> None:
        self.action_id = action_id
        self.path = path
        self.reason = reason
        super().__init__(f"fix {action_id} on {path}: {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "action_id": self.action_id, "path": self.path}
