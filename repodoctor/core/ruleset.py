"""
Configuration Resolver — Merges presets, repository config and overrides.

Layers, lowest to highest:
    built-in defaults → preset (+ its extends) → repo extends → repo config → overrides

Scalars are last-writer-wins, nested maps merge key-wise, and the list
options (ignore.paths, ignore.rules, custom_rules) are unioned in first-seen
order. Every layer is validated before merging so errors name their source.
"""

from __future__ import annotations

import copy
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from repodoctor.config import settings
from repodoctor.errors import (
    InvalidRuleError,
    InvalidValueError,
    InvalidYamlError,
    UnknownPresetError,
)
from repodoctor.models.issue_models import Category, Severity
from repodoctor.models.ruleset_models import AnalyzerSettings, CustomRule, EffectiveRuleset

logger = logging.getLogger("repodoctor.ruleset")

PRESETS_DIR = Path(__file__).resolve().parent.parent / "presets"

REPO_CONFIG_NAMES = (".repodoctor.yml", ".repodoctor.yaml")

# Parameter defaults of every built-in analyzer. The key set is also the
# closed set of analyzer names a config may mention.
DEFAULT_ANALYZER_PARAMS: dict[str, dict[str, Any]] = {
    "structure": {"max_depth": 8},
    "dependencies": {"max_direct": 50},
    "config_files": {},
    "testing": {"min_test_ratio": 0.2, "min_coverage": None},
    "security": {"max_files": 500, "max_lines": 1000},
    "documentation": {"min_readme_lines": 5},
    "symfony": {},
    "laravel": {},
    "flutter": {"max_main_lines": 50},
    "nextjs": {"min_next_major": 14},
    "rust_cargo": {"min_edition": 2021},
    "generic": {},
}

BUILTIN_DEFAULTS: dict[str, Any] = {
    "severity_threshold": "info",
    "ignore": {"paths": [], "rules": []},
    "analyzers": {
        name: {"enabled": True, **params} for name, params in DEFAULT_ANALYZER_PARAMS.items()
    },
    "custom_rules": [],
    "ci": {"fail_on": "high", "min_score": None},
}

TOP_LEVEL_KEYS = {"extends", "severity_threshold", "ignore", "analyzers", "custom_rules", "ci"}
IGNORE_KEYS = {"paths", "rules"}
CI_KEYS = {"fail_on", "min_score"}
CUSTOM_RULE_KEYS = {"id", "pattern", "files", "severity", "message", "category", "suggestion"}

_PRESET_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


# ── Loading ──


def available_presets() -> list[str]:
    return sorted(p.stem for p in PRESETS_DIR.glob("*.yml"))


def load_preset(name: str, base_dir: str | Path | None = None, key: str = "preset") -> dict[str, Any]:
    """
    Load a preset document by name, or by path to a YAML file.

    With base_dir (a repository root), relative paths resolve against it
    and must stay inside it.

    Raises:
        UnknownPresetError: no such preset.
        InvalidValueError: the path leaves base_dir.
        InvalidYamlError: the preset file is not a YAML mapping.
    """
    if Path(name).suffix in (".yml", ".yaml"):
        path = _preset_file(name, base_dir, key)
    elif _PRESET_NAME.match(name) and (PRESETS_DIR / f"{name}.yml").is_file():
        path = PRESETS_DIR / f"{name}.yml"
    else:
        path = None
    if path is None:
        raise UnknownPresetError(
            key,
            f"unknown preset '{name}' (available: {', '.join(available_presets())})",
        )
    return _read_yaml(path, f"preset:{name}")


def _preset_file(name: str, base_dir: str | Path | None, key: str) -> Path | None:
    if base_dir is None:
        path = Path(name)
    else:
        root = Path(base_dir).resolve()
        path = (root / name).resolve()
        if not path.is_relative_to(root):
            raise InvalidValueError(key, f"'{name}' resolves outside the repository root")
    return path if path.is_file() else None


def load_repo_config(root: str | Path) -> dict[str, Any] | None:
    """Read .repodoctor.yml (or .yaml) from the repository root; None if absent."""
    root = Path(root)
    for name in REPO_CONFIG_NAMES:
        path = root / name
        if path.is_file():
            logger.info(f"Using repository config {path}")
            return _read_yaml(path, name)
    return None


def _read_yaml(path: Path, source: str) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidYamlError(source, f"unreadable ({e.strerror or e})") from e
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}" if mark is not None else ""
        raise InvalidYamlError(source, f"unparsable YAML{where}") from e
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise InvalidYamlError(source, "document must be a mapping")
    return doc


# ── Resolution ──


def resolve_ruleset(
    preset_name: str | None = None,
    repo_config: dict[str, Any] | None = None,
    cli_overrides: dict[str, Any] | None = None,
    repo_root: str | Path | None = None,
) -> EffectiveRuleset:
    """
    Build the EffectiveRuleset for one scan.

    A repository config may extend a built-in preset by name or a YAML file
    inside repo_root by relative path.

    Raises:
        ConfigError subclasses naming the offending key or rule.
    """
    preset_name = preset_name or settings.default_preset
    layers: list[tuple[str, dict[str, Any]]] = _preset_layers(preset_name)

    if repo_config:
        repo = validate_layer(repo_config, "repo")
        extends = repo.get("extends")
        if extends:
            if repo_root is None and Path(extends).suffix in (".yml", ".yaml"):
                raise InvalidValueError("repo.extends", "file presets need the repository root")
            layers.extend(_preset_layers(extends, base_dir=repo_root, key="repo.extends"))
        layers.append(("repo", repo))

    if cli_overrides:
        overrides = validate_layer(cli_overrides, "overrides")
        if overrides.get("extends"):
            raise InvalidValueError("overrides.extends", "overrides cannot extend a preset")
        layers.append(("overrides", overrides))

    merged = copy.deepcopy(BUILTIN_DEFAULTS)
    for source, layer in layers:
        logger.debug(f"Merging ruleset layer {source}")
        _merge_into(merged, layer, ())

    ruleset = _build(preset_name, merged)
    logger.info(
        f"Resolved ruleset '{preset_name}': threshold={ruleset.severity_threshold.value}, "
        f"fail_on={ruleset.fail_on.value}, {len(ruleset.ignore_paths)} ignored path(s), "
        f"{len(ruleset.ignore_rules)} ignored rule(s), {len(ruleset.custom_rules)} custom rule(s)"
    )
    return ruleset


def _preset_layers(
    name: str, depth: int = 0, base_dir: str | Path | None = None, key: str = "preset"
) -> list[tuple[str, dict[str, Any]]]:
    source = f"preset:{name}"
    doc = validate_layer(load_preset(name, base_dir, key), source)
    parent = doc.get("extends")
    if not parent:
        return [(source, doc)]
    if depth >= 1:
        raise InvalidValueError(f"{source}.extends", "presets may only extend one level deep")
    return _preset_layers(parent, depth + 1, base_dir, f"{source}.extends") + [(source, doc)]


def _merge_into(base: dict[str, Any], layer: dict[str, Any], path: tuple[str, ...]) -> None:
    for key, value in layer.items():
        if key == "extends" and not path:
            continue
        key_path = path + (key,)
        if key_path == ("custom_rules",):
            base[key] = _union_rules(base.get(key, []), value)
        elif key_path in (("ignore", "paths"), ("ignore", "rules")):
            base[key] = _union(base.get(key, []), value)
        elif isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge_into(base[key], value, key_path)
        else:
            base[key] = copy.deepcopy(value)


def _union(existing: list[str], incoming: list[str]) -> list[str]:
    result = list(existing)
    for item in incoming:
        if item not in result:
            result.append(item)
    return result


def _union_rules(existing: list[dict], incoming: list[dict]) -> list[dict]:
    result = list(existing)
    index = {rule["id"]: i for i, rule in enumerate(result)}
    for rule in incoming:
        if rule["id"] in index:
            result[index[rule["id"]]] = rule
        else:
            index[rule["id"]] = len(result)
            result.append(rule)
    return result


def _build(preset_name: str, merged: dict[str, Any]) -> EffectiveRuleset:
    analyzers = {
        name: AnalyzerSettings(
            enabled=bool(cfg.get("enabled", True)),
            params={k: v for k, v in cfg.items() if k != "enabled"},
        )
        for name, cfg in merged["analyzers"].items()
    }
    ci = merged["ci"]
    return EffectiveRuleset(
        preset=preset_name,
        severity_threshold=Severity.parse(merged["severity_threshold"]),
        ignore_paths=tuple(merged["ignore"]["paths"]),
        ignore_rules=tuple(merged["ignore"]["rules"]),
        analyzers=analyzers,
        custom_rules=tuple(CustomRule(**rule) for rule in merged["custom_rules"]),
        fail_on=Severity.parse(ci["fail_on"]),
        min_score=ci.get("min_score"),
    )


# ── Validation ──


def validate_layer(doc: Any, source: str) -> dict[str, Any]:
    """Check one configuration document and return a normalized copy."""
    if not isinstance(doc, dict):
        raise InvalidYamlError(source, "document must be a mapping")

    unknown = sorted(str(k) for k in doc if k not in TOP_LEVEL_KEYS)
    if unknown:
        raise InvalidValueError(f"{source}.{unknown[0]}", "unknown key")

    out: dict[str, Any] = {}
    if "extends" in doc:
        extends = doc["extends"]
        if not isinstance(extends, str) or not extends.strip():
            raise InvalidValueError(f"{source}.extends", "must be a preset name")
        out["extends"] = extends.strip()

    if "severity_threshold" in doc:
        out["severity_threshold"] = _severity_token(
            doc["severity_threshold"], f"{source}.severity_threshold"
        )

    if "ignore" in doc:
        out["ignore"] = _validate_ignore(doc["ignore"], f"{source}.ignore")

    if "analyzers" in doc:
        out["analyzers"] = _validate_analyzers(doc["analyzers"], f"{source}.analyzers")

    if "custom_rules" in doc:
        rules = doc["custom_rules"]
        if rules is None:
            rules = []
        if not isinstance(rules, list):
            raise InvalidValueError(f"{source}.custom_rules", "must be a list")
        out["custom_rules"] = [
            _validate_custom_rule(raw, f"{source}.custom_rules[{i}]")
            for i, raw in enumerate(rules)
        ]

    if "ci" in doc:
        out["ci"] = _validate_ci(doc["ci"], f"{source}.ci")

    return out


def _severity_token(value: Any, key: str, error: type = InvalidValueError) -> str:
    try:
        return Severity.parse(value).value
    except ValueError:
        allowed = "|".join(s.value for s in Severity)
        raise error(key, f"invalid severity '{value}' (expected {allowed})") from None


def _string_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidValueError(key, "must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def _validate_ignore(value: Any, key: str) -> dict[str, list[str]]:
    if not isinstance(value, dict):
        raise InvalidValueError(key, "must be a mapping")
    unknown = sorted(str(k) for k in value if k not in IGNORE_KEYS)
    if unknown:
        raise InvalidValueError(f"{key}.{unknown[0]}", "unknown key")
    return {k: _string_list(value[k], f"{key}.{k}") for k in value}


def _validate_analyzers(value: Any, key: str) -> dict[str, dict[str, Any]]:
    if not isinstance(value, dict):
        raise InvalidValueError(key, "must be a mapping")
    out: dict[str, dict[str, Any]] = {}
    for name, cfg in value.items():
        entry_key = f"{key}.{name}"
        if name not in DEFAULT_ANALYZER_PARAMS:
            raise InvalidValueError(entry_key, "unknown analyzer")
        # `testing: false` is shorthand for `testing: {enabled: false}`
        if isinstance(cfg, bool):
            cfg = {"enabled": cfg}
        elif cfg is None:
            cfg = {}
        if not isinstance(cfg, dict):
            raise InvalidValueError(entry_key, "must be a mapping or a boolean")
        allowed = {"enabled"} | set(DEFAULT_ANALYZER_PARAMS[name])
        for param, param_value in cfg.items():
            if param not in allowed:
                raise InvalidValueError(f"{entry_key}.{param}", "unknown key")
            if param == "enabled":
                if not isinstance(param_value, bool):
                    raise InvalidValueError(f"{entry_key}.enabled", "must be a boolean")
            elif param_value is not None and (
                isinstance(param_value, bool) or not isinstance(param_value, (int, float))
            ):
                raise InvalidValueError(f"{entry_key}.{param}", "must be a number")
        out[name] = dict(cfg)
    return out


def _validate_ci(value: Any, key: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidValueError(key, "must be a mapping")
    unknown = sorted(str(k) for k in value if k not in CI_KEYS)
    if unknown:
        raise InvalidValueError(f"{key}.{unknown[0]}", "unknown key")
    out: dict[str, Any] = {}
    if "fail_on" in value:
        out["fail_on"] = _severity_token(value["fail_on"], f"{key}.fail_on")
    if "min_score" in value:
        score = value["min_score"]
        if score is not None and (
            isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100
        ):
            raise InvalidValueError(f"{key}.min_score", "must be an integer between 0 and 100")
        out["min_score"] = score
    return out


def _validate_custom_rule(raw: Any, key: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidRuleError(key, "custom rule must be a mapping")
    rule_id = raw.get("id")
    if not isinstance(rule_id, str) or not rule_id.strip():
        raise InvalidRuleError(f"{key}.id", "missing rule id")
    rule_id = rule_id.strip()
    rule_key = f"custom_rules[{rule_id}]"

    unknown = sorted(str(k) for k in raw if k not in CUSTOM_RULE_KEYS)
    if unknown:
        raise InvalidRuleError(f"{rule_key}.{unknown[0]}", "unknown key")

    for required in ("pattern", "message"):
        value = raw.get(required)
        if not isinstance(value, str) or not value:
            raise InvalidRuleError(f"{rule_key}.{required}", f"missing {required}")

    try:
        re.compile(raw["pattern"])
    except re.error as e:
        raise InvalidRuleError(f"{rule_key}.pattern", f"invalid regex: {e}") from None

    rule: dict[str, Any] = {"id": rule_id, "pattern": raw["pattern"], "message": raw["message"]}

    files = raw.get("files", "*")
    if not isinstance(files, str) or not files.strip():
        raise InvalidRuleError(f"{rule_key}.files", "must be a glob string")
    rule["files"] = files.strip()

    if "severity" in raw:
        rule["severity"] = _severity_token(
            raw["severity"], f"{rule_key}.severity", error=InvalidRuleError
        )
    if "category" in raw:
        try:
            rule["category"] = Category.parse(raw["category"]).value
        except ValueError as e:
            raise InvalidRuleError(f"{rule_key}.category", str(e)) from None
    if raw.get("suggestion") is not None:
        rule["suggestion"] = str(raw["suggestion"])
    return rule
