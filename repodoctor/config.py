"""
RepoDoctor Configuration — pydantic-settings based.

All settings are read from environment variables (prefix REPODOCTOR_) or a
.env file. These are process-level knobs only: rule configuration lives in
the EffectiveRuleset that is resolved per scan.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Rulesets ──
    default_preset: str = Field(
        default="balanced", description="Preset used when a scan names none"
    )

    # ── Deadlines ──
    scan_deadline_base_seconds: float = Field(
        default=5.0, description="Fixed part of the global scan deadline"
    )
    scan_deadline_per_file_ms: float = Field(
        default=2.0, description="Deadline budget added per indexed file"
    )
    scan_deadline_max_seconds: float = Field(
        default=30.0, description="Upper bound for the global scan deadline"
    )
    analyzer_timeout_seconds: float = Field(
        default=10.0, description="Soft timeout for a single analyzer"
    )
    max_concurrency: int = Field(
        default=4, ge=1, description="Analyzers allowed to run at the same time"
    )

    # ── Scanning ──
    max_file_size_bytes: int = Field(
        default=1_000_000,
        description="Files above this size are indexed but never read by text checks",
    )
    max_files: int = Field(
        default=20_000, description="Maximum number of files indexed per snapshot"
    )

    # ── Cache ──
    cache_enabled: bool = Field(
        default=True, description="Use the on-disk content-fingerprint cache"
    )
    cache_filename: str = Field(
        default=".repodoctor-cache.json",
        description="Cache file name, created at the repository root",
    )
    cache_ttl_seconds: int = Field(
        default=7 * 24 * 3600, description="Time-to-live for cache entries"
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # ── Audit ──
    audit_log_path: str = Field(
        default="repodoctor-audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_prefix": "REPODOCTOR_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance, imported by other modules
settings = Settings()
