"""Scanner: rule set construction and the suppression run."""

from depsafe.scanner.engine import ScanError, ScanResult, build_rule_set, scan

__all__ = ["ScanError", "ScanResult", "build_rule_set", "scan"]
