"""Tests for suppression file parsing and serialisation."""

import codecs
import textwrap
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from depsafe.suppression.parser import (
    SuppressionParseError,
    dump_suppression_rules,
    format_until,
    load_base_rules,
    load_suppression_file,
    parse_suppression_rules,
    parse_until,
)

NS = "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.3.xsd"


def _doc(body: str, ns: str = NS) -> str:
    xmlns = f' xmlns="{ns}"' if ns else ""
    return f"<suppressions{xmlns}>{textwrap.dedent(body)}</suppressions>"


class TestParse:
    def test_all_elements(self, suppression_xml):
        rules = parse_suppression_rules(suppression_xml)
        assert len(rules) == 4

        first = rules[0]
        assert first.notes == "struts is shaded, not exposed"
        assert first.file_path.regex
        assert first.file_path.value == r".*struts2-core-2\.3\.1\.jar"
        assert [c.value for c in first.cpe] == ["cpe:/a:apache:struts"]
        assert not first.base
        assert first.until is None

        second = rules[1]
        assert second.sha1 == "384FAA82E193D4E4B0546059CA09572654BC3970"
        assert second.cve == ["CVE-2017-5638"]
        assert second.until == datetime(2030, 1, 1, tzinfo=timezone.utc)

        assert rules[2].base
        assert rules[2].gav.regex

        fourth = rules[3]
        assert fourth.package_url.regex
        assert fourth.vulnerability_names[0].case_sensitive
        assert fourth.cwe == ["79"]
        assert fourth.cvss_below == [4.0]

    def test_no_namespace(self):
        rules = parse_suppression_rules(_doc("<suppress><cve>CVE-1</cve></suppress>", ns=""))
        assert rules[0].cve == ["CVE-1"]

    @pytest.mark.parametrize("ns", [
        "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.0.xsd",
        "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.2.xsd",
        "https://www.owasp.org/index.php/OWASP_Dependency_Check_Suppression",
    ])
    def test_older_namespaces(self, ns):
        assert len(parse_suppression_rules(_doc("<suppress><cve>CVE-1</cve></suppress>", ns=ns))) == 1

    def test_bom_bytes(self):
        data = codecs.BOM_UTF8 + _doc("<suppress><cve>CVE-1</cve></suppress>").encode("utf-8")
        assert len(parse_suppression_rules(data)) == 1

    def test_bom_text(self):
        assert len(parse_suppression_rules("\ufeff" + _doc("<suppress><cve>CVE-1</cve></suppress>"))) == 1

    def test_whitespace_trimmed(self):
        rules = parse_suppression_rules(_doc("""
            <suppress>
                <cve>
                    CVE-2020-0001
                </cve>
            </suppress>
        """))
        assert rules[0].cve == ["CVE-2020-0001"]

    def test_boolean_forms(self):
        rules = parse_suppression_rules(_doc('<suppress base="1"><cpe regex="0">cpe:/a:x</cpe></suppress>'))
        assert rules[0].base
        assert not rules[0].cpe[0].regex

    def test_empty_document(self):
        assert parse_suppression_rules(_doc("")) == []


class TestParseErrors:
    @pytest.mark.parametrize("body, fragment", [
        ("<suppress><cpe>cpe:/a:x</cpe><bogus/></suppress>", "unexpected element <bogus>"),
        ("<suppress><notes>a</notes><notes>b</notes><cve>C</cve></suppress>", "more than once"),
        ("<suppress><gav>g</gav><packageUrl>p</packageUrl><cve>C</cve></suppress>", "both <gav> and <packageUrl>"),
        ("<suppress><gav>g</gav></suppress>", "has no cpe"),
        ("<suppress><cvssBelow>high</cvssBelow></suppress>", "must be a number"),
        ("<suppress><cvssBelow>NaN</cvssBelow></suppress>", "must be between 0 and 10"),
        ("<suppress><cvssBelow>inf</cvssBelow></suppress>", "must be between 0 and 10"),
        ("<suppress><cvssBelow>11</cvssBelow></suppress>", "must be between 0 and 10"),
        ("<suppress><cvssBelow>-1</cvssBelow></suppress>", "must be between 0 and 10"),
        ('<suppress base="yes"><cve>C</cve></suppress>', "invalid boolean"),
        ('<suppress until="soon"><cve>C</cve></suppress>', "unable to parse until"),
        ('<suppress><cpe regex="true">(unclosed</cpe></suppress>', "invalid regular expression"),
        ("<other/>", "unexpected element <other>"),
    ])
    def test_rejected(self, body, fragment):
        with pytest.raises(SuppressionParseError, match=fragment.replace("(", r"\(")):
            parse_suppression_rules(_doc(body))

    def test_malformed_xml(self):
        with pytest.raises(SuppressionParseError, match="malformed XML"):
            parse_suppression_rules("<suppressions><suppress>")

    def test_wrong_root(self):
        with pytest.raises(SuppressionParseError, match="root element"):
            parse_suppression_rules("<hints/>")

    def test_unknown_namespace(self):
        with pytest.raises(SuppressionParseError, match="namespace"):
            parse_suppression_rules(_doc("", ns="urn:example:other"))

    def test_source_in_message(self):
        with pytest.raises(SuppressionParseError) as exc_info:
            parse_suppression_rules(_doc("<suppress/>"), source="team.xml")
        assert exc_info.value.source == "team.xml"
        assert str(exc_info.value).startswith("team.xml: ")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SuppressionParseError) as exc_info:
            load_suppression_file(tmp_path / "missing.xml")
        assert exc_info.value.source.endswith("missing.xml")


class TestUntil:
    def test_date_is_midnight_utc(self):
        assert parse_until("2025-03-01") == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_date_with_offset(self):
        value = parse_until("2025-03-01-05:00")
        assert value.utcoffset() == timedelta(hours=-5)
        assert value.date().isoformat() == "2025-03-01"

    def test_datetime(self):
        assert parse_until("2025-03-01T12:30:00Z") == datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        assert parse_until("2025-03-01T12:30:00").tzinfo is not None

    def test_format(self):
        assert format_until(datetime(2025, 3, 1, tzinfo=timezone.utc)) == "2025-03-01Z"
        assert format_until(parse_until("2025-03-01+02:00")) == "2025-03-01+02:00"


class TestFiles:
    def test_load_file(self, suppression_file):
        assert len(load_suppression_file(suppression_file)) == 4

    def test_base_rules_packaged(self):
        rules = load_base_rules()
        assert rules
        assert all(r.base for r in rules)
        assert all(r.has_cpe for r in rules)

    def test_dump_round_trip(self, suppression_xml):
        rules = parse_suppression_rules(suppression_xml)
        dumped = dump_suppression_rules(rules)
        assert dumped.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert f'xmlns="{NS}"' in dumped
        assert parse_suppression_rules(dumped) == rules
