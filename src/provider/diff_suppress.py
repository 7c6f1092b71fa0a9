"""Structural diff suppression for text configuration fields.

Some fields carry a whole document as a string (an ActiveMQ XML broker
configuration, for instance). AWS hands back a reformatted copy, so a plain
string comparison would report a change on every plan. This module decides
whether two such strings are the same document.

DESIGN PHILOSOPHY:
- Compare canonical forms, never raw text
- XML: attribute order, insignificant whitespace, comments and namespace
  prefixes are ignored
- Fail open: if either side does not parse, the values are treated as
  different so that a real change is never hidden behind a parse problem
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class StructuralFormat(str, Enum):
    """Formats a field value can be canonicalized under."""

    XML = "xml"


def canonical_xml(text: str) -> str:
    """Return the canonical form of an XML document.

    Uses C14N 2.0: attributes are sorted, whitespace-only text is dropped,
    comments are removed and namespace prefixes are rewritten to a
    deterministic sequence so that ``<p:a xmlns:p="u"/>`` and
    ``<a xmlns="u"/>`` compare equal.

    Raises:
        ET.ParseError: If the text is not well-formed XML.
    """
    return ET.canonicalize(
        xml_data=text,
        strip_text=True,
        rewrite_prefixes=True,
        with_comments=False,
    )


_CANONICALIZERS = {
    StructuralFormat.XML: canonical_xml,
}


def equivalent(a: str, b: str, fmt: StructuralFormat = StructuralFormat.XML) -> bool:
    """Check whether two documents are structurally identical.

    Never raises. A parse failure on either side returns False.
    """
    canonicalize = _CANONICALIZERS[fmt]

    try:
        canonical_a = canonicalize(a)
    except (ET.ParseError, ValueError, TypeError) as e:
        logger.warning(
            "Could not canonicalize prior value, treating as changed",
            extra={"format": fmt.value, "error": str(e)},
        )
        return False

    try:
        canonical_b = canonicalize(b)
    except (ET.ParseError, ValueError, TypeError) as e:
        logger.warning(
            "Could not canonicalize new value, treating as changed",
            extra={"format": fmt.value, "error": str(e)},
        )
        return False

    return canonical_a == canonical_b


def xml_equivalent(a: str, b: str) -> bool:
    """Check whether two XML documents are semantically equivalent."""
    return equivalent(a, b, StructuralFormat.XML)


@dataclass
class SuppressionConfig:
    """Configuration for diff suppression.

    Attributes:
        log_suppressions: Whether to log when a change is suppressed.
    """

    log_suppressions: bool = True

    @classmethod
    def from_env(cls) -> SuppressionConfig:
        """Load configuration from environment.

        Environment Variables:
            LOG_SUPPRESSIONS: If "false", don't log suppressed changes
        """
        return cls(
            log_suppressions=os.environ.get("LOG_SUPPRESSIONS", "true").lower()
            in ("true", "1", "yes"),
        )


@dataclass
class DiffSuppressor:
    """Decides whether a field change is only a formatting difference.

    Each adapter registers the fields that hold structured documents, the
    remaining fields fall through to plain equality.
    """

    fields: dict[str, StructuralFormat] = field(default_factory=dict)
    config: SuppressionConfig = field(default_factory=SuppressionConfig)

    def suppress(self, kind: str, field_name: str, old: Any, new: Any) -> bool:
        """Return True when ``old`` and ``new`` should not count as a change.

        Args:
            kind: Resource kind, for logging.
            field_name: Attribute name.
            old: Prior value (from state or the remote read).
            new: Desired value (from configuration).
        """
        if old == new:
            return True

        fmt = self.fields.get(field_name)
        if fmt is None or not isinstance(old, str) or not isinstance(new, str):
            return False

        if not equivalent(old, new, fmt):
            return False

        if self.config.log_suppressions:
            logger.debug(
                "Change suppressed as structurally equivalent",
                extra={"kind": kind, "field": field_name, "format": fmt.value},
            )
        return True
