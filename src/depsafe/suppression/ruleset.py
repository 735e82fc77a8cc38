"""Suppression rule set: ordered rules applied to every dependency."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional

from depsafe.dependency.models import Dependency
from depsafe.suppression.rule import SuppressionRule

logger = logging.getLogger(__name__)


@dataclass
class SuppressionStats:
    """What one ``apply()`` run did."""

    dependencies: int = 0
    identifiers_suppressed: int = 0
    vulnerabilities_suppressed: int = 0
    expired_rules: List[SuppressionRule] = field(default_factory=list)
    cancelled: bool = False


class SuppressionRuleSet:
    """Ordered store for every suppression rule of a run.

    Rules keep declaration order; several files are concatenated in load
    order with no deduplication. Removal is idempotent, so overlapping
    rules only change which rule gets credited as ``matched``.
    """

    def __init__(self, rules: Optional[Iterable[SuppressionRule]] = None) -> None:
        self._rules: List[SuppressionRule] = list(rules or [])

    # ---- registration ----

    def add(self, rule: SuppressionRule) -> None:
        self._rules.append(rule)

    def extend(self, rules: Iterable[SuppressionRule]) -> None:
        self._rules.extend(rules)

    # ---- queries ----

    @property
    def rules(self) -> List[SuppressionRule]:
        return list(self._rules)

    def __iter__(self) -> Iterator[SuppressionRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def expired_rules(self, now: Optional[datetime] = None) -> List[SuppressionRule]:
        now = now or datetime.now(timezone.utc)
        return [r for r in self._rules if r.is_expired(now)]

    def active_rules(self, now: Optional[datetime] = None) -> List[SuppressionRule]:
        now = now or datetime.now(timezone.utc)
        return [r for r in self._rules if not r.is_expired(now)]

    def unused_rules(self, now: Optional[datetime] = None) -> List[SuppressionRule]:
        """Non-base, non-expired rules that never removed anything."""
        return [r for r in self.active_rules(now) if not r.matched and not r.base]

    # ---- processing ----

    def apply(
        self,
        dependencies: Iterable[Dependency],
        *,
        now: Optional[datetime] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> SuppressionStats:
        """Run every non-expired rule, in order, against every dependency.

        *should_stop* is polled before each dependency; once it returns True
        the remaining dependencies are left untouched.
        """
        now = now or datetime.now(timezone.utc)
        stats = SuppressionStats(expired_rules=self.expired_rules(now))
        for rule in stats.expired_rules:
            logger.info("Suppression rule is expired and was not applied: %s", rule)

        active = self.active_rules(now)
        for dependency in dependencies:
            if should_stop is not None and should_stop():
                logger.info("Suppression run cancelled after %d dependencies", stats.dependencies)
                stats.cancelled = True
                break
            stats.dependencies += 1
            ids_before = len(dependency.vulnerable_software_identifiers)
            vulns_before = len(dependency.vulnerabilities)
            for rule in active:
                rule.process(dependency)
            stats.identifiers_suppressed += ids_before - len(dependency.vulnerable_software_identifiers)
            stats.vulnerabilities_suppressed += vulns_before - len(dependency.vulnerabilities)
        return stats

    def audit_unused(
        self,
        now: Optional[datetime] = None,
        *,
        as_error: bool = False,
    ) -> List[SuppressionRule]:
        """Log and return every rule that had zero effect on the run."""
        unused = self.unused_rules(now)
        level = logging.ERROR if as_error else logging.INFO
        for rule in unused:
            logger.log(level, "Suppression rule had zero matches: %s", rule)
        return unused
