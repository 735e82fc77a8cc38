"""Dependency and vulnerability data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Iterator, List, Optional, Set

from cvss import CVSS2, CVSS3, CVSS4, CVSSError

from depsafe.dependency.identifiers import Identifier


@dataclass(eq=False)
class Vulnerability:
    """A published vulnerability matched against a dependency.

    Equality and hashing use ``(source, name)`` so notes written by a
    suppression rule never change set membership.
    """

    name: str
    cwes: List[str] = field(default_factory=list)
    cvss_v2: Optional[float] = None
    cvss_v3: Optional[float] = None
    cvss_v4: Optional[float] = None
    description: str = ""
    source: str = "NVD"
    notes: Optional[str] = None

    @classmethod
    def from_vectors(
        cls,
        name: str,
        *,
        cvss_v2_vector: Optional[str] = None,
        cvss_v3_vector: Optional[str] = None,
        cvss_v4_vector: Optional[str] = None,
        **kwargs,
    ) -> "Vulnerability":
        """Build a vulnerability, computing base scores from CVSS vectors."""
        try:
            if cvss_v2_vector:
                kwargs["cvss_v2"] = float(CVSS2(cvss_v2_vector).base_score)
            if cvss_v3_vector:
                kwargs["cvss_v3"] = float(CVSS3(cvss_v3_vector).base_score)
            if cvss_v4_vector:
                kwargs["cvss_v4"] = float(CVSS4(cvss_v4_vector).base_score)
        except CVSSError as exc:
            raise ValueError(f"Invalid CVSS vector for {name}: {exc}") from exc
        return cls(name=name, **kwargs)

    def cvss_scores(self) -> Iterator[float]:
        """Yield the base scores that are present, v2 then v3 then v4."""
        for score in (self.cvss_v2, self.cvss_v3, self.cvss_v4):
            if score is not None:
                yield score

    @property
    def highest_score(self) -> Optional[float]:
        return max(self.cvss_scores(), default=None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vulnerability):
            return NotImplemented
        return (self.source, self.name) == (other.source, other.name)

    def __hash__(self) -> int:
        return hash((self.source, self.name))


@dataclass(eq=False)
class Dependency:
    """A scanned artifact and everything matched against it.

    The suppression engine mutates ``vulnerable_software_identifiers`` and
    ``vulnerabilities`` in place and records what it removed in the
    ``suppressed_*`` sets.
    """

    file_path: str
    sha1: Optional[str] = None
    software_identifiers: Set[Identifier] = field(default_factory=set)
    vulnerable_software_identifiers: Set[Identifier] = field(default_factory=set)
    vulnerabilities: Set[Vulnerability] = field(default_factory=set)
    suppressed_identifiers: Set[Identifier] = field(default_factory=set)
    suppressed_vulnerabilities: Set[Vulnerability] = field(default_factory=set)

    @property
    def file_name(self) -> str:
        return PurePath(self.file_path).name

    # ---- identifiers ----

    def add_software_identifier(self, identifier: Identifier) -> None:
        self.software_identifiers.add(identifier)

    def add_vulnerable_software_identifier(self, identifier: Identifier) -> None:
        self.vulnerable_software_identifiers.add(identifier)

    def remove_vulnerable_software_identifier(self, identifier: Identifier) -> None:
        self.vulnerable_software_identifiers.discard(identifier)

    def add_suppressed_identifier(self, identifier: Identifier) -> None:
        self.suppressed_identifiers.add(identifier)

    # ---- vulnerabilities ----

    def add_vulnerability(self, vulnerability: Vulnerability) -> None:
        self.vulnerabilities.add(vulnerability)

    def remove_vulnerability(self, vulnerability: Vulnerability) -> None:
        self.vulnerabilities.discard(vulnerability)

    def add_suppressed_vulnerability(self, vulnerability: Vulnerability) -> None:
        self.suppressed_vulnerabilities.add(vulnerability)

    def sorted_vulnerabilities(self) -> List[Vulnerability]:
        return sorted(self.vulnerabilities, key=lambda v: v.name)
