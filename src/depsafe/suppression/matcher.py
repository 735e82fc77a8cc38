"""PropertyMatcher: literal / case-insensitive / regex value matching.

The same matcher type backs every pattern-valued suppression criterion
(``filePath``, ``gav``, ``packageUrl``, ``cpe``, ``vulnerabilityName``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class PropertyMatcher:
    """A value plus the ``regex`` / ``caseSensitive`` flags from the XML.

    Regex matching is full-match: ``1\\.2\\..*`` matches ``1.2.3`` but not
    ``x1.2.3``. The compiled pattern is built lazily on first access via
    ``compiled_pattern`` and cached.
    """

    value: str
    regex: bool = False
    case_sensitive: bool = False

    # --- cached compiled pattern (not part of equality) ---
    _compiled: Optional[re.Pattern[str]] = field(
        default=None, init=False, repr=False, compare=False
    )

    @property
    def compiled_pattern(self) -> Optional[re.Pattern[str]]:
        if not self.regex:
            return None
        if self._compiled is None:
            flags = 0 if self.case_sensitive else re.IGNORECASE
            object.__setattr__(self, "_compiled", re.compile(self.value, flags))
        return self._compiled

    def matches(self, text: Optional[str]) -> bool:
        """Return True if *text* matches under this matcher's flags."""
        if text is None:
            return False
        if self.regex:
            return self.compiled_pattern.fullmatch(text) is not None
        if self.case_sensitive:
            return self.value == text
        return self.value.lower() == text.lower()

    def __str__(self) -> str:
        return (
            f"PropertyMatcher{{value={self.value}, regex={str(self.regex).lower()}, "
            f"caseSensitive={str(self.case_sensitive).lower()}}}"
        )
