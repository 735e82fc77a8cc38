"""Shared test fixtures: sample suppression files, dependencies, inventories."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from depsafe.dependency.identifiers import CpeIdentifier, PurlIdentifier
from depsafe.dependency.models import Dependency, Vulnerability

NS = "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.3.xsd"


@pytest.fixture
def suppression_xml() -> str:
    """A suppression file exercising every criterion element."""
    return textwrap.dedent(f"""\
        <?xml version="1.0" encoding="UTF-8"?>
        <suppressions xmlns="{NS}">
            <suppress>
                <notes>struts is shaded, not exposed</notes>
                <filePath regex="true">.*struts2-core-2\\.3\\.1\\.jar</filePath>
                <cpe>cpe:/a:apache:struts</cpe>
            </suppress>
            <suppress until="2030-01-01Z">
                <sha1>384FAA82E193D4E4B0546059CA09572654BC3970</sha1>
                <cve>CVE-2017-5638</cve>
            </suppress>
            <suppress base="true">
                <gav regex="true">org\\.apache\\.httpcomponents:httpclient:.*</gav>
                <cpe>cpe:/a:apache:http_server</cpe>
            </suppress>
            <suppress>
                <packageUrl regex="true">^pkg:maven/com\\.example/lib@.*$</packageUrl>
                <vulnerabilityName caseSensitive="true">GHSA-xxxx-yyyy-zzzz</vulnerabilityName>
                <cwe>79</cwe>
                <cvssBelow>4.0</cvssBelow>
            </suppress>
        </suppressions>
    """)


@pytest.fixture
def suppression_file(tmp_path: Path, suppression_xml: str) -> Path:
    path = tmp_path / "suppressions.xml"
    path.write_text(suppression_xml, encoding="utf-8")
    return path


@pytest.fixture
def struts_dependency() -> Dependency:
    """A struts jar with one CPE and two published vulnerabilities."""
    dep = Dependency(
        file_path="/app/lib/struts2-core-2.3.1.jar",
        sha1="384faa82e193d4e4b0546059ca09572654bc3970",
    )
    dep.add_software_identifier(PurlIdentifier.of("maven", "struts2-core", "2.3.1", "org.apache.struts"))
    dep.add_vulnerable_software_identifier(CpeIdentifier.of("apache", "struts", "2.3.1"))
    dep.add_vulnerability(Vulnerability("CVE-2017-5638", cwes=["CWE-20"], cvss_v3=10.0))
    dep.add_vulnerability(Vulnerability("CVE-2012-0392", cwes=["CWE-94"], cvss_v2=6.8))
    return dep


@pytest.fixture
def net_framework_dependency() -> Dependency:
    dep = Dependency(file_path="c:/windows/Microsoft.NET/Framework/v4.0/System.dll")
    dep.add_vulnerable_software_identifier(CpeIdentifier.from_string("cpe:/a:microsoft:.net_framework:4.5"))
    dep.add_vulnerability(Vulnerability("CVE-2013-1337", cwes=["CWE-287 Improper Authentication"], cvss_v2=7.5))
    return dep


@pytest.fixture
def inventory_yaml() -> str:
    return textwrap.dedent("""\
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
              - CVE-2012-0392
          - file_path: lib/httpclient-4.5.2.jar
            identifiers:
              - pkg:maven/org.apache.httpcomponents/httpclient@4.5.2
            vulnerable_software:
              - cpe:/a:apache:http_server:4.5.2
            vulnerabilities:
              - name: CVE-2021-44790
                cvss_v3_vector: CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H
    """)


@pytest.fixture
def inventory_file(tmp_path: Path, inventory_yaml: str) -> Path:
    path = tmp_path / "inventory.yaml"
    path.write_text(inventory_yaml, encoding="utf-8")
    return path
