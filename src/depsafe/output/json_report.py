"""JSON reporter for CI pipelines."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from depsafe import __version__
from depsafe.dependency.identifiers import Identifier
from depsafe.dependency.models import Dependency, Vulnerability
from depsafe.scanner.engine import ScanResult


def _vulnerability(v: Vulnerability) -> Dict[str, Any]:
    return {
        "name": v.name,
        "source": v.source,
        "cwes": list(v.cwes),
        **({"cvss_v2": v.cvss_v2} if v.cvss_v2 is not None else {}),
        **({"cvss_v3": v.cvss_v3} if v.cvss_v3 is not None else {}),
        **({"cvss_v4": v.cvss_v4} if v.cvss_v4 is not None else {}),
        **({"notes": v.notes} if v.notes else {}),
    }


def _identifier(i: Identifier) -> Dict[str, Any]:
    return {
        "type": i.kind.value,
        "value": i.value,
        **({"notes": i.notes} if i.notes else {}),
    }


def _dependency(d: Dependency) -> Dict[str, Any]:
    return {
        "file_path": d.file_path,
        "sha1": d.sha1,
        "identifiers": sorted(i.value for i in d.software_identifiers),
        "vulnerable_software": sorted(i.value for i in d.vulnerable_software_identifiers),
        "vulnerabilities": [_vulnerability(v) for v in d.sorted_vulnerabilities()],
        "suppressed_identifiers": [
            _identifier(i) for i in sorted(d.suppressed_identifiers, key=lambda i: i.value)
        ],
        "suppressed_vulnerabilities": [
            _vulnerability(v) for v in sorted(d.suppressed_vulnerabilities, key=lambda v: v.name)
        ],
    }


def to_dict(result: ScanResult) -> Dict[str, Any]:
    """Convert ScanResult to a JSON-serialisable dict."""
    dependencies: List[Dict[str, Any]] = [_dependency(d) for d in result.dependencies]
    return {
        "version": __version__,
        "dependencies": dependencies,
        "total_vulnerabilities": result.total_vulnerabilities,
        "suppressed": {
            "identifiers": result.stats.identifiers_suppressed,
            "vulnerabilities": result.stats.vulnerabilities_suppressed,
        },
        "rules": {
            "loaded": result.rule_count,
            "expired": [str(r) for r in result.expired_rules],
            "unused": [str(r) for r in result.unused_rules],
        },
        "scan_duration_ms": result.scan_duration_ms,
    }


def render(result: ScanResult) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(result), indent=2)
