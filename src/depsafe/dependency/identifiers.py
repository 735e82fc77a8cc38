"""Software identifiers attached to a dependency: CPE, package URL, generic.

Every identifier exposes the same small surface (``kind``, ``value``,
``canonical_form()``, ``to_gav()``) so the suppression engine can compare
suppression entries against it without caring which concrete class it is.

CPE values are stored in CPE 2.3 formatted-string form: literal special
characters are backslash-quoted, ``*`` is ANY and ``-`` is NA.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from packageurl import PackageURL

logger = logging.getLogger(__name__)

ANY = "*"
NA = "-"

_CPE23_PREFIX = "cpe:2.3:"
_CPE22_PREFIX = "cpe:/"
_VALID_PARTS = frozenset({"a", "o", "h", ANY})

# Characters that stay unquoted in both the 2.3 formatted string and the 2.2 URI
_PLAIN_CHARS = frozenset("._-")

# Split a formatted string on colons that are not backslash-quoted
_FS_SPLIT_RE = re.compile(r"(?<!\\):")
_HEX_RE = re.compile(r"[0-9a-fA-F]{2}")


class IdentifierKind(str, Enum):
    CPE = "cpe"
    PURL = "purl"
    GENERIC = "generic"


class IdentifierError(ValueError):
    """Raised when an identifier string cannot be parsed."""


class CpeEncodingError(ValueError):
    """Raised when a CPE cannot be expressed as a CPE 2.2 URI."""


class Identifier:
    """Common base: equality and hashing use ``(kind, value)`` only.

    ``notes`` is an annotation; changing it never moves an identifier
    inside a set.
    """

    kind: IdentifierKind
    notes: Optional[str]

    @property
    def value(self) -> str:
        raise NotImplementedError

    def canonical_form(self) -> Optional[str]:
        """String that suppression entries are compared against."""
        return self.value

    def to_gav(self) -> Optional[str]:
        """Maven-style ``group:artifact:version`` rendering, if any."""
        return None

    def _key(self) -> Tuple[str, str]:
        return (self.kind.value, self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.value


# ── CPE ───────────────────────────────────────────────────────────────────────


def _quote(text: str) -> str:
    """Quote literal *text* for the 2.3 formatted string."""
    return "".join(c if c.isalnum() or c in _PLAIN_CHARS else f"\\{c}" for c in text)


def _encode_uri_component(value: str) -> str:
    """Encode one formatted-string component for a 2.2 URI."""
    if value == ANY:
        return ""
    if value == NA:
        return NA
    out: List[str] = []
    chars = iter(value)
    for c in chars:
        if c == "\\":
            literal = next(chars, "")
            if literal.isalnum() or literal in _PLAIN_CHARS:
                out.append(literal)
            else:
                out.append("".join(f"%{b:02x}" for b in literal.encode("utf-8")))
        elif c in "*?":
            raise CpeEncodingError(f"embedded wildcard in CPE component {value!r}")
        else:
            out.append(c)
    return "".join(out)


def _decode_uri_component(raw: str) -> str:
    """Decode one 2.2 URI component into formatted-string form."""
    if raw == "":
        return ANY
    if raw == NA:
        return NA
    out: List[str] = []
    i = 0
    while i < len(raw):
        c = raw[i]
        if c == "%" and _HEX_RE.fullmatch(raw[i + 1:i + 3]):
            code = int(raw[i + 1:i + 3], 16)
            if code == 0x01:
                out.append("?")
            elif code == 0x02:
                out.append("*")
            else:
                out.append(_quote(chr(code)))
            i += 3
            continue
        out.append(_quote(c))
        i += 1
    return "".join(out)


@dataclass(eq=False)
class CpeIdentifier(Identifier):
    """A Common Platform Enumeration name."""

    part: str = "a"
    vendor: str = ANY
    product: str = ANY
    version: str = ANY
    update: str = ANY
    edition: str = ANY
    language: str = ANY
    sw_edition: str = ANY
    target_sw: str = ANY
    target_hw: str = ANY
    other: str = ANY
    notes: Optional[str] = field(default=None, compare=False)

    kind = IdentifierKind.CPE

    @classmethod
    def of(cls, vendor: str, product: str, version: str = ANY, part: str = "a") -> "CpeIdentifier":
        """Build from literal (unquoted) vendor / product / version text."""
        return cls(
            part=part,
            vendor=_quote(vendor),
            product=_quote(product),
            version=version if version in (ANY, NA) else _quote(version),
        )

    @classmethod
    def from_string(cls, text: str) -> "CpeIdentifier":
        """Parse a CPE 2.3 formatted string or a CPE 2.2 URI."""
        text = text.strip()
        if text.startswith(_CPE23_PREFIX):
            parts = _FS_SPLIT_RE.split(text[len(_CPE23_PREFIX):])
            if len(parts) != 11:
                raise IdentifierError(f"CPE 2.3 name must have 11 components: {text}")
            components = parts
        elif text.startswith(_CPE22_PREFIX):
            raw = text[len(_CPE22_PREFIX):].split(":")
            if len(raw) > 7:
                raise IdentifierError(f"CPE 2.2 URI has too many components: {text}")
            raw += [""] * (7 - len(raw))
            extended = [ANY] * 4
            edition = raw[5]
            if edition.startswith("~"):
                packed = edition[1:].split("~")
                if len(packed) != 5:
                    raise IdentifierError(f"Malformed packed edition in CPE: {text}")
                edition = packed[0]
                extended = [_decode_uri_component(p) for p in packed[1:]]
            components = [_decode_uri_component(p) for p in raw[:5]]
            components.append(_decode_uri_component(edition))
            components.append(_decode_uri_component(raw[6]))
            components.extend(extended)
        else:
            raise IdentifierError(f"Not a CPE name: {text}")

        if components[0] not in _VALID_PARTS:
            raise IdentifierError(f"Invalid CPE part {components[0]!r}: {text}")
        return cls(*components)

    @property
    def components(self) -> Tuple[str, ...]:
        return (
            self.part, self.vendor, self.product, self.version, self.update,
            self.edition, self.language, self.sw_edition, self.target_sw,
            self.target_hw, self.other,
        )

    @property
    def value(self) -> str:
        return _CPE23_PREFIX + ":".join(self.components)

    def to_cpe22_uri(self) -> str:
        """Bind to a CPE 2.2 URI. Raises CpeEncodingError."""
        fields = [
            _encode_uri_component(v)
            for v in (self.part, self.vendor, self.product, self.version, self.update)
        ]
        extended = (self.sw_edition, self.target_sw, self.target_hw, self.other)
        if any(v != ANY for v in extended):
            packed = [_encode_uri_component(v) for v in (self.edition, *extended)]
            fields.append("~" + "~".join(packed))
        else:
            fields.append(_encode_uri_component(self.edition))
        fields.append(_encode_uri_component(self.language))
        return _CPE22_PREFIX + ":".join(fields).rstrip(":")

    def canonical_form(self) -> Optional[str]:
        try:
            return self.to_cpe22_uri()
        except CpeEncodingError as exc:
            logger.debug("Unable to convert CPE to 2.2 URI: %s (%s)", self.value, exc)
            return None


# ── Package URL ───────────────────────────────────────────────────────────────


@dataclass(eq=False)
class PurlIdentifier(Identifier):
    """A package URL (``pkg:maven/org.example/lib@1.0``)."""

    purl: PackageURL
    notes: Optional[str] = field(default=None, compare=False)

    kind = IdentifierKind.PURL

    @classmethod
    def of(
        cls,
        type: str,
        name: str,
        version: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> "PurlIdentifier":
        return cls(PackageURL(type=type, namespace=namespace, name=name, version=version))

    @classmethod
    def from_string(cls, text: str) -> "PurlIdentifier":
        try:
            return cls(PackageURL.from_string(text.strip()))
        except ValueError as exc:
            raise IdentifierError(f"Invalid package URL {text!r}: {exc}") from exc

    @property
    def value(self) -> str:
        return self.purl.to_string()

    def to_gav(self) -> Optional[str]:
        if self.purl.namespace and self.purl.version:
            return f"{self.purl.namespace}:{self.purl.name}:{self.purl.version}"
        return None


# ── Generic ───────────────────────────────────────────────────────────────────


@dataclass(eq=False)
class GenericIdentifier(Identifier):
    """Any identifier that is neither a CPE nor a package URL."""

    raw: str
    notes: Optional[str] = field(default=None, compare=False)

    kind = IdentifierKind.GENERIC

    @property
    def value(self) -> str:
        return self.raw


def parse_identifier(text: str) -> Identifier:
    """Build the right identifier type from its string form."""
    stripped = text.strip()
    lowered = stripped.lower()
    if lowered.startswith("cpe:"):
        return CpeIdentifier.from_string(stripped)
    if lowered.startswith("pkg:"):
        return PurlIdentifier.from_string(stripped)
    return GenericIdentifier(stripped)
