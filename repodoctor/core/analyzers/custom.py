"""
Custom Rule Analyzer — Runs the user-declared regex rules of the ruleset.

Each rule selects files with a glob and is matched line by line. Results
are cached per file under a scope that fingerprints the whole rule set, so
editing any rule invalidates every cached entry.
"""

from __future__ import annotations

import hashlib
import json
import re

from repodoctor.core.analyzers.base import Analyzer, CancelToken
from repodoctor.core.globs import glob_match
from repodoctor.core.project import Project
from repodoctor.models.issue_models import Category, Issue
from repodoctor.models.ruleset_models import CustomRule, EffectiveRuleset


def rules_fingerprint(rules: tuple[CustomRule, ...]) -> str:
    payload = json.dumps([r.model_dump(mode="json") for r in rules], sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


class CustomRuleAnalyzer(Analyzer):
    name = "custom_rules"
    description = "User-defined pattern rules from presets and .repodoctor.yml"
    category = Category.SECURITY
    # Issues are built from CustomRule entries, not a static catalog
    rules = {}

    def applies_to(self, project: Project) -> bool:
        return True

    def analyze(
        self, project: Project, ruleset: EffectiveRuleset, cancel: CancelToken
    ) -> list[Issue]:
        if not ruleset.custom_rules:
            return []
        compiled = [(rule, re.compile(rule.pattern)) for rule in ruleset.custom_rules]
        scope = f"custom:{rules_fingerprint(ruleset.custom_rules)}"
        snapshot = project.snapshot
        cache = project.cache

        issues: list[Issue] = []
        for rel in snapshot.files:
            selected = [(rule, rx) for rule, rx in compiled if glob_match(rel, rule.files)]
            if not selected:
                continue
            cancel.check()

            content_hash = snapshot.content_hash(rel) if cache is not None else None
            if cache is not None and content_hash is not None:
                cached = cache.get(scope, rel, content_hash)
                if cached is not None:
                    issues.extend(cached)
                    continue

            text = snapshot.read_text(rel)
            if text is None:
                continue
            found = self.scan_text(rel, text, selected)
            if cache is not None and content_hash is not None:
                cache.put(scope, rel, content_hash, found)
            issues.extend(found)
        return issues

    def scan_text(
        self, rel: str, text: str, selected: list[tuple[CustomRule, re.Pattern[str]]]
    ) -> list[Issue]:
        found = []
        for line_num, line in enumerate(text.splitlines(), start=1):
            for rule, rx in selected:
                if rx.search(line):
                    found.append(
                        Issue(
                            id=rule.id,
                            analyzer=self.name,
                            category=rule.category,
                            severity=rule.severity,
                            title=rule.message,
                            description=f"Custom rule {rule.id} matched /{rule.pattern}/ in {rel}",
                            file=rel,
                            line=line_num,
                            suggestion=rule.suggestion,
                        )
                    )
        return found
