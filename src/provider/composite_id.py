"""Composite identifier encoding.

Remote APIs key some objects by several values (an AppSync resolver is
addressed by API id, type name and field name). The local state stores one
flat identifier, so those parts are joined with a delimiter and split back
on read and import.

Decoding splits on the first N-1 delimiters only: the final part may carry
the delimiter itself, which mirrors identifiers with path-like suffixes.
Encoding is stricter and rejects any part containing the delimiter, so that
``decode(encode(parts)) == parts`` always holds.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import MalformedIdError

DEFAULT_DELIMITER = "-"
SUPPORTED_DELIMITERS = ("-", "/")


def _check_delimiter(delimiter: str) -> None:
    if delimiter not in SUPPORTED_DELIMITERS:
        raise ValueError(
            f"Unsupported delimiter {delimiter!r}, expected one of {SUPPORTED_DELIMITERS}"
        )


def encode_id(*parts: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Join identifier parts into a single resource identifier.

    Args:
        *parts: Identifier components, in order.
        delimiter: Separator placed between parts.

    Returns:
        The flat identifier.

    Raises:
        MalformedIdError: If fewer than two parts are given, or a part is
            empty or contains the delimiter.
    """
    _check_delimiter(delimiter)

    if len(parts) < 2:
        raise MalformedIdError(f"A composite ID needs at least 2 parts, got {len(parts)}")

    for index, part in enumerate(parts):
        if not part:
            raise MalformedIdError(f"Composite ID part {index} is empty")
        if delimiter in part:
            raise MalformedIdError(
                f"Composite ID part {index} ({part!r}) contains the delimiter {delimiter!r}"
            )

    return delimiter.join(parts)


def decode_id(
    resource_id: str,
    expected_parts: int,
    delimiter: str = DEFAULT_DELIMITER,
) -> tuple[str, ...]:
    """Split a resource identifier into exactly ``expected_parts`` parts.

    Raises:
        MalformedIdError: If the split does not yield exactly
            ``expected_parts`` non-empty segments.
    """
    _check_delimiter(delimiter)

    if expected_parts < 2:
        raise ValueError(f"expected_parts must be at least 2, got {expected_parts}")

    parts = resource_id.split(delimiter, expected_parts - 1)
    if len(parts) != expected_parts or not all(parts):
        raise MalformedIdError(
            f"Expected ID with {expected_parts} parts separated by {delimiter!r}, "
            f"received: {resource_id!r}"
        )
    return tuple(parts)


@dataclass(frozen=True)
class CompositeIdFormat:
    """A named composite identifier layout.

    Attributes:
        field_names: Display names of the parts, in order (e.g. ApiID).
        delimiter: Separator between parts.
    """

    field_names: tuple[str, ...]
    delimiter: str = DEFAULT_DELIMITER

    def __post_init__(self) -> None:
        _check_delimiter(self.delimiter)
        if len(self.field_names) < 2:
            raise ValueError("A composite ID format needs at least 2 fields")

    @property
    def layout(self) -> str:
        """Human readable layout, e.g. ``ApiID-TypeName-FieldName``."""
        return self.delimiter.join(self.field_names)

    def encode(self, *parts: str) -> str:
        if len(parts) != len(self.field_names):
            raise MalformedIdError(
                f"Expected {len(self.field_names)} parts for {self.layout}, got {len(parts)}"
            )
        return encode_id(*parts, delimiter=self.delimiter)

    def decode(self, resource_id: str) -> tuple[str, ...]:
        try:
            return decode_id(resource_id, len(self.field_names), self.delimiter)
        except MalformedIdError as e:
            raise MalformedIdError(
                f"Expected ID in format {self.layout}, received: {resource_id}"
            ) from e


APPSYNC_RESOLVER_ID = CompositeIdFormat(("ApiID", "TypeName", "FieldName"))
APPSYNC_FUNCTION_ID = CompositeIdFormat(("ApiID", "FunctionID"))
APIGATEWAY_STAGE_ID = CompositeIdFormat(("ApiID", "StageName"), delimiter="/")
