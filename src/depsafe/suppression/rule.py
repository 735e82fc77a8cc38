"""SuppressionRule: one ``<suppress>`` directive and the logic that applies it.

``process()`` runs a fixed sequence of gates against a dependency:

  1. ``filePath`` must match the dependency path.
  2. ``sha1`` must equal the dependency hash (case-insensitive).
  3. ``gav`` must match at least one software identifier.
  4. ``packageUrl`` must match at least one package-URL identifier.

A rule that fails a gate leaves the dependency untouched. Otherwise
matching vulnerable-software identifiers (``cpe``) and vulnerabilities
(``cve`` -> ``cwe`` -> ``vulnerabilityName`` -> ``cvssBelow``, first match
wins) are collected first and removed after the scan. Base rules remove
silently; every other rule records what it removed on the dependency and
marks itself ``matched``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set

from depsafe.dependency.identifiers import Identifier, IdentifierKind
from depsafe.dependency.models import Dependency, Vulnerability
from depsafe.suppression.matcher import PropertyMatcher

logger = logging.getLogger(__name__)


def identifier_matches(entry: PropertyMatcher, identifier: Identifier) -> bool:
    """Return True if the suppression *entry* matches *identifier*.

    Package URLs are compared in ``group:artifact:version`` form. CPEs are
    compared as 2.2 URIs: regex entries must match the whole URI, literal
    entries are prefix matches so ``cpe:/a:vendor:product`` covers every
    version. Anything else is compared by raw value.
    """
    if identifier.kind is IdentifierKind.PURL:
        return entry.matches(identifier.to_gav())
    if identifier.kind is IdentifierKind.CPE:
        uri = identifier.canonical_form()
        if uri is None:
            return False
        if entry.regex:
            return entry.matches(uri)
        if entry.case_sensitive:
            return uri.startswith(entry.value)
        return uri.lower().startswith(entry.value.lower())
    return entry.matches(identifier.value)


def purl_matches(entry: PropertyMatcher, identifier: Identifier) -> bool:
    """Return True if *identifier* is a package URL whose canonical form matches."""
    if identifier.kind is not IdentifierKind.PURL:
        return False
    return entry.matches(identifier.canonical_form())


def cpe_has_no_version(entry: PropertyMatcher) -> bool:
    """True for a literal CPE entry naming only part/vendor/product."""
    return not entry.regex and entry.value.count(":") <= 3


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class SuppressionRule:
    """A single suppression directive.

    ``matched`` is the only field that changes after loading; it flips to
    True the first time a non-base rule removes something.
    """

    file_path: Optional[PropertyMatcher] = None
    sha1: Optional[str] = None
    gav: Optional[PropertyMatcher] = None
    package_url: Optional[PropertyMatcher] = None
    cpe: List[PropertyMatcher] = field(default_factory=list)
    cwe: List[str] = field(default_factory=list)
    cve: List[str] = field(default_factory=list)
    vulnerability_names: List[PropertyMatcher] = field(default_factory=list)
    cvss_below: List[float] = field(default_factory=list)
    notes: Optional[str] = None
    base: bool = False
    until: Optional[datetime] = None
    matched: bool = field(default=False, compare=False)

    # ---- criteria queries ----

    @property
    def has_cpe(self) -> bool:
        return bool(self.cpe)

    @property
    def has_cwe(self) -> bool:
        return bool(self.cwe)

    @property
    def has_cve(self) -> bool:
        return bool(self.cve)

    @property
    def has_vulnerability_name(self) -> bool:
        return bool(self.vulnerability_names)

    @property
    def has_cvss_below(self) -> bool:
        return bool(self.cvss_below)

    @property
    def has_vulnerability_criteria(self) -> bool:
        return (
            self.has_cve
            or self.has_cwe
            or self.has_vulnerability_name
            or self.has_cvss_below
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True if ``until`` is set and lies before *now*.

        Naive datetimes, on either side, are taken as UTC.
        """
        if self.until is None:
            return False
        now = _as_utc(now or datetime.now(timezone.utc))
        return _as_utc(self.until) < now

    def patterns(self) -> Iterable[PropertyMatcher]:
        """Every PropertyMatcher held by this rule."""
        for single in (self.file_path, self.gav, self.package_url):
            if single is not None:
                yield single
        yield from self.cpe
        yield from self.vulnerability_names

    # ---- processing ----

    def _passes_gates(self, dependency: Dependency) -> bool:
        if self.file_path is not None and not self.file_path.matches(dependency.file_path):
            return False
        if self.sha1 is not None:
            if dependency.sha1 is None or self.sha1.lower() != dependency.sha1.lower():
                return False
        if self.gav is not None:
            if not any(identifier_matches(self.gav, i) for i in dependency.software_identifiers):
                return False
        if self.package_url is not None:
            if not any(purl_matches(self.package_url, i) for i in dependency.software_identifiers):
                return False
        return True

    def _vulnerability_matches(self, vulnerability: Vulnerability) -> bool:
        # Order matters: it decides which criterion credits the rule.
        name = vulnerability.name
        if name is not None and any(entry.lower() == name.lower() for entry in self.cve):
            return True
        if vulnerability.cwes:
            for entry in self.cwe:
                prefix = f"CWE-{entry}"
                if any(cwe.startswith(prefix) for cwe in vulnerability.cwes):
                    return True
        if name is not None and any(entry.matches(name) for entry in self.vulnerability_names):
            return True
        for threshold in self.cvss_below:
            if any(score < threshold for score in vulnerability.cvss_scores()):
                return True
        return False

    def process(self, dependency: Dependency) -> None:
        """Remove every identifier and vulnerability this rule suppresses."""
        if not self._passes_gates(dependency):
            return

        if self.has_cpe:
            remove_ids: Set[Identifier] = set()
            for identifier in dependency.vulnerable_software_identifiers:
                if any(identifier_matches(entry, identifier) for entry in self.cpe):
                    remove_ids.add(identifier)
            for identifier in remove_ids:
                if not self.base:
                    self.matched = True
                    if self.notes is not None:
                        identifier.notes = self.notes
                    dependency.add_suppressed_identifier(identifier)
                dependency.remove_vulnerable_software_identifier(identifier)
            if remove_ids:
                logger.debug(
                    "Suppressed %d identifier(s) on %s via %s",
                    len(remove_ids), dependency.file_path, self,
                )

        if self.has_vulnerability_criteria:
            remove_vulns: Set[Vulnerability] = set()
            for vulnerability in dependency.vulnerabilities:
                if self._vulnerability_matches(vulnerability):
                    remove_vulns.add(vulnerability)
            for vulnerability in remove_vulns:
                if not self.base:
                    self.matched = True
                    if self.notes is not None:
                        vulnerability.notes = self.notes
                    dependency.add_suppressed_vulnerability(vulnerability)
                dependency.remove_vulnerability(vulnerability)
            if remove_vulns:
                logger.debug(
                    "Suppressed %d vulnerabilit(y/ies) on %s via %s",
                    len(remove_vulns), dependency.file_path, self,
                )

    # ---- audit ----

    def __str__(self) -> str:
        parts: List[str] = []
        if self.until is not None:
            parts.append(f"until={self.until.isoformat()},")
        if self.file_path is not None:
            parts.append(f"filePath={self.file_path},")
        if self.sha1 is not None:
            parts.append(f"sha1={self.sha1},")
        if self.package_url is not None:
            parts.append(f"packageUrl={self.package_url},")
        if self.gav is not None:
            parts.append(f"gav={self.gav},")
        for label, values in (
            ("cpe", self.cpe),
            ("cwe", self.cwe),
            ("cve", self.cve),
            ("vulnerabilityName", self.vulnerability_names),
            ("cvssBelow", self.cvss_below),
        ):
            if values:
                parts.append(f"{label}={{" + "".join(f"{v}," for v in values) + "}")
        return "SuppressionRule{" + "".join(parts) + "}"
