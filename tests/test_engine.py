"""Tests for the scan engine: rule set construction and suppression runs."""

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from depsafe.config.schema import DepSafeConfig
from depsafe.dependency.loader import load_dependencies
from depsafe.scanner.engine import ScanError, build_rule_set, scan
from depsafe.suppression.parser import SuppressionParseError, load_base_rules
from depsafe.suppression.rule import SuppressionRule
from depsafe.suppression.ruleset import SuppressionRuleSet

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


class TestBuildRuleSet:
    def test_base_rules_first(self, suppression_file: Path):
        cfg = DepSafeConfig()
        cfg.suppression.files = [str(suppression_file)]
        rule_set = build_rule_set(cfg)
        base_count = len(load_base_rules())
        assert len(rule_set) == base_count + 4
        assert all(r.base for r in rule_set.rules[:base_count])

    def test_without_base(self, suppression_file: Path):
        cfg = DepSafeConfig()
        cfg.suppression.include_base = False
        rule_set = build_rule_set(cfg, extra_files=[str(suppression_file)])
        assert len(rule_set) == 4

    def test_bad_file_aborts(self, tmp_path: Path, suppression_file: Path, caplog):
        caplog.set_level(logging.DEBUG, logger="depsafe")
        bad = tmp_path / "bad.xml"
        bad.write_text("<suppressions><suppress/></suppressions>")
        cfg = DepSafeConfig()
        cfg.suppression.include_base = False
        with pytest.raises(SuppressionParseError) as exc_info:
            build_rule_set(cfg, extra_files=[str(suppression_file), str(bad)])
        assert exc_info.value.source == str(bad)
        assert "Unable to load suppression file" in caplog.text
        assert not any(r.levelno >= logging.WARNING for r in caplog.records)


class TestScan:
    def test_end_to_end(self, inventory_file: Path, suppression_file: Path):
        cfg = DepSafeConfig()
        rule_set = build_rule_set(cfg, extra_files=[str(suppression_file)])
        dependencies = load_dependencies(inventory_file)
        result = scan(dependencies, rule_set, now=NOW)

        struts, httpclient = result.dependencies
        # filePath rule removes the struts CPE; the sha1 rule removes CVE-2017-5638
        assert not struts.vulnerable_software_identifiers
        assert {v.name for v in struts.vulnerabilities} == {"CVE-2012-0392"}
        # the packaged base rule drops the Apache HTTP Server CPE without a trace
        assert not httpclient.vulnerable_software_identifiers
        assert not httpclient.suppressed_identifiers

        assert result.total_vulnerabilities == 2
        assert result.stats.vulnerabilities_suppressed == 1
        assert result.total_suppressed == 2
        assert [d.file_path for d in result.vulnerable_dependencies] == [
            "lib/struts2-core-2.3.1.jar", "lib/httpclient-4.5.2.jar",
        ]
        assert len(result.unused_rules) == 1
        assert result.unused_rules[0].package_url is not None
        assert result.rule_count == len(rule_set)

    def test_expired_rules_reported(self, struts_dependency):
        expired = SuppressionRule(cve=["CVE-2017-5638"], until=datetime(2020, 1, 1, tzinfo=timezone.utc))
        result = scan([struts_dependency], SuppressionRuleSet([expired]), now=NOW)
        assert result.expired_rules == [expired]
        assert result.unused_rules == []

    def test_internal_error_wrapped(self, struts_dependency):
        class Exploding(SuppressionRule):
            def process(self, dependency):
                raise RuntimeError("boom")

        with pytest.raises(ScanError, match="boom"):
            scan([struts_dependency], SuppressionRuleSet([Exploding(cve=["X"])]), now=NOW)

    def test_cancelled_run_skips_unused_audit(self, struts_dependency, caplog):
        caplog.set_level(logging.INFO, logger="depsafe")
        rule_set = SuppressionRuleSet([SuppressionRule(cve=["CVE-1999-0001"])])
        result = scan([struts_dependency], rule_set, fail_on_unused=True, now=NOW, should_stop=lambda: True)
        assert result.stats.cancelled
        assert result.unused_rules == []
        assert "zero matches" not in caplog.text
