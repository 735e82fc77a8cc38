"""Scan engine: loads the rule set and runs it over a dependency inventory.

A rule set is either loaded completely or not at all: the first suppression
file that fails to parse aborts the run before any rule is applied.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from depsafe.config.schema import DepSafeConfig
from depsafe.dependency.models import Dependency
from depsafe.suppression.parser import SuppressionParseError, load_base_rules, load_suppression_file
from depsafe.suppression.rule import SuppressionRule
from depsafe.suppression.ruleset import SuppressionRuleSet, SuppressionStats

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """Raised on an internal error while applying suppression rules."""


@dataclass
class ScanResult:
    """Complete result of a suppression run."""

    dependencies: List[Dependency] = field(default_factory=list)
    stats: SuppressionStats = field(default_factory=SuppressionStats)
    unused_rules: List[SuppressionRule] = field(default_factory=list)
    rule_count: int = 0
    scan_duration_ms: float = 0.0

    @property
    def expired_rules(self) -> List[SuppressionRule]:
        return self.stats.expired_rules

    @property
    def total_vulnerabilities(self) -> int:
        return sum(len(d.vulnerabilities) for d in self.dependencies)

    @property
    def total_suppressed(self) -> int:
        return sum(
            len(d.suppressed_vulnerabilities) + len(d.suppressed_identifiers)
            for d in self.dependencies
        )

    @property
    def vulnerable_dependencies(self) -> List[Dependency]:
        return [d for d in self.dependencies if d.vulnerabilities]


def build_rule_set(
    config: DepSafeConfig,
    *,
    extra_files: Iterable[str] = (),
) -> SuppressionRuleSet:
    """Create the rule set: base rules, then configured files, then *extra_files*.

    Raises SuppressionParseError for the first file that fails to load.
    """
    rule_set = SuppressionRuleSet()
    if config.suppression.include_base:
        rule_set.extend(load_base_rules())

    for path in [*config.suppression.files, *extra_files]:
        try:
            rules = load_suppression_file(path)
        except SuppressionParseError as exc:
            logger.debug("Unable to load suppression file %s: %s", path, exc.reason)
            raise
        logger.debug("Loaded %d suppression rule(s) from %s", len(rules), path)
        rule_set.extend(rules)

    logger.debug("%d suppression rules were loaded.", len(rule_set))
    return rule_set


def scan(
    dependencies: List[Dependency],
    rule_set: SuppressionRuleSet,
    *,
    fail_on_unused: bool = False,
    now: Optional[datetime] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> ScanResult:
    """Apply *rule_set* to *dependencies* in place. Returns a ScanResult."""
    start = time.perf_counter()
    try:
        stats = rule_set.apply(dependencies, now=now, should_stop=should_stop)
    except Exception as exc:
        raise ScanError(f"Internal error while applying suppression rules: {exc}") from exc

    # zero-match audit needs a complete run
    unused = [] if stats.cancelled else rule_set.audit_unused(now, as_error=fail_on_unused)
    elapsed = (time.perf_counter() - start) * 1000

    return ScanResult(
        dependencies=dependencies,
        stats=stats,
        unused_rules=unused,
        rule_count=len(rule_set),
        scan_duration_ms=round(elapsed, 2),
    )
