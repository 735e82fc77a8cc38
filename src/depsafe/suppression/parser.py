"""Suppression file parsing and serialisation.

Reads the ``<suppressions>`` XML contract::

    <suppressions xmlns="https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.3.xsd">
      <suppress base="false" until="2030-01-01Z">
        <notes>false positive on the shaded copy</notes>
        <gav regex="true">com\\.example:lib:.*</gav>
        <cpe>cpe:/a:example:lib</cpe>
        <cve>CVE-2020-0001</cve>
      </suppress>
    </suppressions>

Every problem is fatal at load time: a file either yields all of its
rules or raises SuppressionParseError naming the file and the reason.
"""

from __future__ import annotations

import codecs
import logging
import math
import re
import xml.etree.ElementTree as ET
from datetime import date, datetime, timedelta, timezone
from importlib import resources
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from depsafe.suppression.matcher import PropertyMatcher
from depsafe.suppression.rule import SuppressionRule

logger = logging.getLogger(__name__)

SCHEMA_NAMESPACE = "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.3.xsd"

_KNOWN_NAMESPACES = frozenset({
    "",
    "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.0.xsd",
    "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.1.xsd",
    "https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.2.xsd",
    SCHEMA_NAMESPACE,
    "https://www.owasp.org/index.php/OWASP_Dependency_Check_Suppression",
})

BASE_SUPPRESSION_FILE = "base-suppression.xml"

_TRUE = frozenset({"true", "1"})
_FALSE = frozenset({"false", "0"})
_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(Z|[+-]\d{2}:\d{2})?$")

# Elements that may appear at most once inside <suppress>
_SINGLE_ELEMENTS = frozenset({"filePath", "sha1", "gav", "packageUrl", "notes"})


class SuppressionParseError(Exception):
    """Raised when a suppression file is malformed or unreadable."""

    def __init__(self, reason: str, source: Optional[str] = None) -> None:
        self.reason = reason
        self.source = source
        super().__init__(f"{source}: {reason}" if source else reason)


# ── value helpers ─────────────────────────────────────────────────────────────


def _local_name(tag: str) -> Tuple[str, str]:
    """Split ``{namespace}local`` into (namespace, local)."""
    if tag.startswith("{"):
        ns, _, local = tag[1:].partition("}")
        return ns, local
    return "", tag


def _parse_bool(raw: Optional[str], what: str) -> bool:
    if raw is None:
        return False
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise SuppressionParseError(f"invalid boolean {raw!r} for {what}")


def _parse_zone(raw: Optional[str]) -> timezone:
    if raw is None or raw == "Z":
        return timezone.utc
    sign = -1 if raw[0] == "-" else 1
    hours, minutes = (int(p) for p in raw[1:].split(":"))
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_until(raw: str) -> datetime:
    """Parse an ``until`` attribute (xs:date or xs:dateTime) to an aware datetime.

    A date without a zone is midnight UTC.
    """
    text = raw.strip()
    try:
        m = _DATE_RE.match(text)
        if m:
            day = date.fromisoformat(m.group(1))
            return datetime(day.year, day.month, day.day, tzinfo=_parse_zone(m.group(2)))
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise SuppressionParseError(f"unable to parse until date {raw!r}") from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_until(value: datetime) -> str:
    """Inverse of parse_until: dates at midnight are written as xs:date."""
    if value.time() == datetime.min.time():
        offset = value.utcoffset() or timedelta(0)
        if offset == timedelta(0):
            zone = "Z"
        else:
            sign = "-" if offset < timedelta(0) else "+"
            minutes = abs(int(offset.total_seconds())) // 60
            zone = f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"
        return value.date().isoformat() + zone
    return value.isoformat()


def _text(elem: ET.Element) -> str:
    return (elem.text or "").strip()


def _matcher(elem: ET.Element, name: str) -> PropertyMatcher:
    matcher = PropertyMatcher(
        value=_text(elem),
        regex=_parse_bool(elem.get("regex"), f"{name}/@regex"),
        case_sensitive=_parse_bool(elem.get("caseSensitive"), f"{name}/@caseSensitive"),
    )
    # Force-compile now so a bad pattern fails the load, not the scan
    try:
        _ = matcher.compiled_pattern
    except re.error as exc:
        raise SuppressionParseError(
            f"invalid regular expression in <{name}>: {matcher.value!r} ({exc})"
        ) from exc
    return matcher


def _cvss(elem: ET.Element, name: str) -> float:
    try:
        score = float(_text(elem))
    except ValueError as exc:
        raise SuppressionParseError(f"<{name}> must be a number, got {_text(elem)!r}") from exc
    if not math.isfinite(score) or not 0.0 <= score <= 10.0:
        raise SuppressionParseError(f"<{name}> must be between 0 and 10, got {_text(elem)!r}")
    return score


# ── element handlers ──────────────────────────────────────────────────────────


def _set_file_path(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.file_path = _matcher(elem, name)


def _set_sha1(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.sha1 = _text(elem)


def _set_gav(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.gav = _matcher(elem, name)


def _set_package_url(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.package_url = _matcher(elem, name)


def _add_cpe(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.cpe.append(_matcher(elem, name))


def _add_cwe(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.cwe.append(_text(elem))


def _add_cve(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.cve.append(_text(elem))


def _add_vulnerability_name(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.vulnerability_names.append(_matcher(elem, name))


def _add_cvss_below(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.cvss_below.append(_cvss(elem, name))


def _set_notes(rule: SuppressionRule, elem: ET.Element, name: str) -> None:
    rule.notes = _text(elem)


_HANDLERS: Dict[str, Callable[[SuppressionRule, ET.Element, str], None]] = {
    "notes": _set_notes,
    "filePath": _set_file_path,
    "sha1": _set_sha1,
    "gav": _set_gav,
    "packageUrl": _set_package_url,
    "cpe": _add_cpe,
    "cve": _add_cve,
    "vulnerabilityName": _add_vulnerability_name,
    "cwe": _add_cwe,
    "cvssBelow": _add_cvss_below,
}


def _parse_suppress(elem: ET.Element, index: int) -> SuppressionRule:
    rule = SuppressionRule(base=_parse_bool(elem.get("base"), "suppress/@base"))
    until = elem.get("until")
    if until is not None:
        rule.until = parse_until(until)

    seen: set[str] = set()
    for child in elem:
        _, name = _local_name(child.tag)
        handler = _HANDLERS.get(name)
        if handler is None:
            raise SuppressionParseError(f"unexpected element <{name}> in suppress #{index}")
        if name in _SINGLE_ELEMENTS and name in seen:
            raise SuppressionParseError(f"<{name}> appears more than once in suppress #{index}")
        seen.add(name)
        handler(rule, child, name)

    if rule.gav is not None and rule.package_url is not None:
        raise SuppressionParseError(
            f"suppress #{index} sets both <gav> and <packageUrl>; use one identity gate"
        )
    if not rule.has_cpe and not rule.has_vulnerability_criteria:
        raise SuppressionParseError(
            f"suppress #{index} has no cpe, cve, cwe, vulnerabilityName or cvssBelow"
        )
    return rule


# ── public API ────────────────────────────────────────────────────────────────


def parse_suppression_rules(
    data: Union[bytes, str],
    source: Optional[str] = None,
) -> List[SuppressionRule]:
    """Parse a suppression document. Raises SuppressionParseError."""
    if isinstance(data, bytes):
        if data.startswith(codecs.BOM_UTF8):
            data = data[len(codecs.BOM_UTF8):]
    else:
        data = data.lstrip("\ufeff")

    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise SuppressionParseError(f"malformed XML: {exc}", source) from exc

    try:
        ns, name = _local_name(root.tag)
        if name != "suppressions":
            raise SuppressionParseError(f"root element must be <suppressions>, got <{name}>")
        if ns not in _KNOWN_NAMESPACES:
            raise SuppressionParseError(f"unsupported suppression schema namespace {ns!r}")

        rules: List[SuppressionRule] = []
        for index, child in enumerate(root, 1):
            _, child_name = _local_name(child.tag)
            if child_name != "suppress":
                raise SuppressionParseError(f"unexpected element <{child_name}> in <suppressions>")
            rules.append(_parse_suppress(child, index))
    except SuppressionParseError as exc:
        if source is None or exc.source is not None:
            raise
        raise SuppressionParseError(exc.reason, source) from exc

    logger.debug("Parsed %d suppression rule(s) from %s", len(rules), source or "<string>")
    return rules


def load_suppression_file(path: Union[str, Path]) -> List[SuppressionRule]:
    """Load every rule from the suppression file at *path*."""
    path = Path(path)
    logger.debug("Loading suppression rules from '%s'", path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SuppressionParseError(f"unable to read suppression file: {exc.strerror}", str(path)) from exc
    return parse_suppression_rules(data, source=str(path))


def load_base_rules() -> List[SuppressionRule]:
    """Load the base suppression rules packaged with depsafe."""
    resource = resources.files("depsafe") / "data" / BASE_SUPPRESSION_FILE
    return parse_suppression_rules(resource.read_bytes(), source=BASE_SUPPRESSION_FILE)


# ── serialisation ─────────────────────────────────────────────────────────────


def _q(name: str) -> str:
    return f"{{{SCHEMA_NAMESPACE}}}{name}"


def _matcher_element(parent: ET.Element, name: str, matcher: PropertyMatcher) -> None:
    elem = ET.SubElement(parent, _q(name))
    elem.text = matcher.value
    if matcher.regex:
        elem.set("regex", "true")
    if matcher.case_sensitive:
        elem.set("caseSensitive", "true")


def _text_element(parent: ET.Element, name: str, text: str) -> None:
    ET.SubElement(parent, _q(name)).text = text


def rule_to_element(rule: SuppressionRule) -> ET.Element:
    """Serialise *rule* as a ``<suppress>`` element."""
    elem = ET.Element(_q("suppress"))
    if rule.base:
        elem.set("base", "true")
    if rule.until is not None:
        elem.set("until", format_until(rule.until))
    if rule.notes is not None:
        _text_element(elem, "notes", rule.notes)
    if rule.file_path is not None:
        _matcher_element(elem, "filePath", rule.file_path)
    if rule.sha1 is not None:
        _text_element(elem, "sha1", rule.sha1)
    if rule.gav is not None:
        _matcher_element(elem, "gav", rule.gav)
    if rule.package_url is not None:
        _matcher_element(elem, "packageUrl", rule.package_url)
    for matcher in rule.cpe:
        _matcher_element(elem, "cpe", matcher)
    for cve in rule.cve:
        _text_element(elem, "cve", cve)
    for matcher in rule.vulnerability_names:
        _matcher_element(elem, "vulnerabilityName", matcher)
    for cwe in rule.cwe:
        _text_element(elem, "cwe", cwe)
    for score in rule.cvss_below:
        _text_element(elem, "cvssBelow", repr(score))
    return elem


def dump_suppression_rules(rules: Iterable[SuppressionRule]) -> str:
    """Write *rules* as a complete suppression document."""
    ET.register_namespace("", SCHEMA_NAMESPACE)
    root = ET.Element(_q("suppressions"))
    for rule in rules:
        root.append(rule_to_element(rule))
    ET.indent(root, space="    ")
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"
