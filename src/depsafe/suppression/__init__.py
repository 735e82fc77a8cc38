"""Suppression engine: matcher, rules, rule set, XML parser."""

from depsafe.suppression.matcher import PropertyMatcher
from depsafe.suppression.parser import (
    SuppressionParseError,
    dump_suppression_rules,
    load_base_rules,
    load_suppression_file,
    parse_suppression_rules,
)
from depsafe.suppression.rule import (
    SuppressionRule,
    cpe_has_no_version,
    identifier_matches,
    purl_matches,
)
from depsafe.suppression.ruleset import SuppressionRuleSet, SuppressionStats

__all__ = [
    "PropertyMatcher",
    "SuppressionParseError",
    "SuppressionRule",
    "SuppressionRuleSet",
    "SuppressionStats",
    "cpe_has_no_version",
    "dump_suppression_rules",
    "identifier_matches",
    "load_base_rules",
    "load_suppression_file",
    "parse_suppression_rules",
    "purl_matches",
]
