"""Dependency inventory loading: YAML / JSON documents produced by analyzers.

Expected shape::

    dependencies:
      - file_path: lib/struts2-core-2.3.1.jar
        sha1: 384FAA82E193D4E4B0546059CA09572654BC3970
        identifiers:
          - pkg:maven/org.apache.struts/struts2-core@2.3.1
        vulnerable_software:
          - cpe:2.3:a:apache:struts:2.3.1:*:*:*:*:*:*:*
        vulnerabilities:
          - name: CVE-2017-5638
            cwes: [CWE-20]
            cvss_v3: 10.0
          - name: CVE-2016-1000031
            cvss_v3_vector: CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from depsafe.dependency.identifiers import IdentifierError, parse_identifier
from depsafe.dependency.models import Dependency, Vulnerability


class DependencyLoadError(Exception):
    """Raised when a dependency inventory is malformed or unreadable."""


_SCORE_KEYS = ("cvss_v2", "cvss_v3", "cvss_v4")
_VECTOR_KEYS = ("cvss_v2_vector", "cvss_v3_vector", "cvss_v4_vector")


def _build_vulnerability(entry: Any) -> Vulnerability:
    if isinstance(entry, str):
        return Vulnerability(name=entry)
    if not isinstance(entry, dict) or "name" not in entry:
        raise DependencyLoadError(f"vulnerability entry needs a name: {entry!r}")

    kwargs: Dict[str, Any] = {
        "cwes": [str(c) for c in entry.get("cwes", [])],
        "description": entry.get("description", ""),
        "source": entry.get("source", "NVD"),
    }
    for key in _SCORE_KEYS:
        if entry.get(key) is not None:
            try:
                kwargs[key] = float(entry[key])
            except (TypeError, ValueError) as exc:
                raise DependencyLoadError(
                    f"{entry['name']}: {key} must be a number, got {entry[key]!r}"
                ) from exc
    vectors = {k: entry[k] for k in _VECTOR_KEYS if entry.get(k)}
    try:
        return Vulnerability.from_vectors(str(entry["name"]), **vectors, **kwargs)
    except ValueError as exc:
        raise DependencyLoadError(str(exc)) from exc


def _build_dependency(entry: Any) -> Dependency:
    if not isinstance(entry, dict) or "file_path" not in entry:
        raise DependencyLoadError(f"dependency entry needs a file_path: {entry!r}")
    dep = Dependency(file_path=str(entry["file_path"]), sha1=entry.get("sha1"))
    try:
        for text in entry.get("identifiers", []):
            dep.add_software_identifier(parse_identifier(str(text)))
        for text in entry.get("vulnerable_software", []):
            dep.add_vulnerable_software_identifier(parse_identifier(str(text)))
    except IdentifierError as exc:
        raise DependencyLoadError(f"{dep.file_path}: {exc}") from exc
    for vuln in entry.get("vulnerabilities", []):
        dep.add_vulnerability(_build_vulnerability(vuln))
    return dep


def parse_dependencies(data: Any) -> List[Dependency]:
    """Build Dependency objects from an already-decoded document."""
    if isinstance(data, dict):
        data = data.get("dependencies", [])
    if not isinstance(data, list):
        raise DependencyLoadError("inventory must be a list or contain a 'dependencies' list")
    return [_build_dependency(entry) for entry in data]


def load_dependencies(path: Union[str, Path]) -> List[Dependency]:
    """Load a YAML or JSON dependency inventory from *path*."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise DependencyLoadError(f"Unable to read {path}: {exc.strerror}") from exc
    except yaml.YAMLError as exc:
        raise DependencyLoadError(f"Failed to parse {path}: {exc}") from exc
    if data is None:
        return []
    try:
        return parse_dependencies(data)
    except DependencyLoadError as exc:
        raise DependencyLoadError(f"{path}: {exc}") from exc
