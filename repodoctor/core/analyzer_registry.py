"""
Analyzer Registry — The closed set of built-in analyzers.

Order here is the order analyzers are scheduled in; results are sorted
afterwards, so it never affects output.
"""

from __future__ import annotations

from repodoctor.core.analyzers.base import Analyzer
from repodoctor.core.analyzers.config_files import ConfigFilesAnalyzer
from repodoctor.core.analyzers.custom import CustomRuleAnalyzer
from repodoctor.core.analyzers.dependencies import DependenciesAnalyzer
from repodoctor.core.analyzers.documentation import DocumentationAnalyzer
from repodoctor.core.analyzers.flutter import FlutterAnalyzer
from repodoctor.core.analyzers.generic import GenericAnalyzer
from repodoctor.core.analyzers.laravel import LaravelAnalyzer
from repodoctor.core.analyzers.nextjs import NextJsAnalyzer
from repodoctor.core.analyzers.rust_cargo import RustCargoAnalyzer
from repodoctor.core.analyzers.security import SecurityAnalyzer
from repodoctor.core.analyzers.structure import StructureAnalyzer
from repodoctor.core.analyzers.symfony import SymfonyAnalyzer
from repodoctor.core.analyzers.testing import TestingAnalyzer

# Registry of all built-in analyzers, keyed by the name used in rulesets
ANALYZER_REGISTRY: dict[str, Analyzer] = {
    analyzer.name: analyzer
    for analyzer in (
        StructureAnalyzer(),
        DependenciesAnalyzer(),
        ConfigFilesAnalyzer(),
        TestingAnalyzer(),
        SecurityAnalyzer(),
        DocumentationAnalyzer(),
        SymfonyAnalyzer(),
        LaravelAnalyzer(),
        FlutterAnalyzer(),
        NextJsAnalyzer(),
        RustCargoAnalyzer(),
        GenericAnalyzer(),
    )
}

CUSTOM_RULE_ANALYZER = CustomRuleAnalyzer()


def all_rules() -> dict[str, tuple[str, object]]:
    """Every built-in rule id mapped to (analyzer name, Rule)."""
    return {
        rule_id: (analyzer.name, rule)
        for analyzer in ANALYZER_REGISTRY.values()
        for rule_id, rule in analyzer.rules.items()
    }
