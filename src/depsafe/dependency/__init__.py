"""Dependency data: identifiers, vulnerabilities, inventory loading."""

from depsafe.dependency.identifiers import (
    CpeEncodingError,
    CpeIdentifier,
    GenericIdentifier,
    Identifier,
    IdentifierError,
    IdentifierKind,
    PurlIdentifier,
    parse_identifier,
)
from depsafe.dependency.loader import DependencyLoadError, load_dependencies
from depsafe.dependency.models import Dependency, Vulnerability

__all__ = [
    "CpeEncodingError",
    "CpeIdentifier",
    "Dependency",
    "DependencyLoadError",
    "GenericIdentifier",
    "Identifier",
    "IdentifierError",
    "IdentifierKind",
    "PurlIdentifier",
    "Vulnerability",
    "load_dependencies",
    "parse_identifier",
]
