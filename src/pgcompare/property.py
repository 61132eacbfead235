"""Comparison of single property values."""

from __future__ import annotations

import re
from operator import eq
from typing import TYPE_CHECKING, Any

from pgcompare.report import (
    Kind,
    PropertyChanged,
    PropertyComparison,
    PropertyUnchanged,
    Report,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

# Display value of an absent optional property
NONE = "<none>"

# Code points with the Unicode White_Space property; str.split() also splits
# on the ASCII information separators U+001C to U+001F, which are not.
WHITESPACE = re.compile(
    r"[\t-\r \x85\xa0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000]+",
)

type Equality = Callable[[Any, Any], bool]
type PropertyComparer = Callable[[str, Any, Any], PropertyComparison]
type PropertyRule = tuple[str, PropertyComparer]


def tokens(text: str) -> list[str]:
    """Split text on Unicode whitespace, dropping empty tokens."""
    return [token for token in WHITESPACE.split(text) if token]


def equal_ignore_whitespace(left: str, right: str) -> bool:
    """Compare two strings treating any run of whitespace as a token separator.

    Leading and trailing whitespace is ignored, so is the amount and kind of
    whitespace between tokens. Whitespace never matches its absence inside a
    token: "ab" and "a b" differ.
    """
    return tokens(left) == tokens(right)


def compare_property(name: str, left: Any, right: Any) -> PropertyComparison:  # noqa: ANN401
    """Compare two required values for equality."""
    if left == right:
        return PropertyUnchanged(name, str(left))
    return PropertyChanged(name, str(left), str(right))


def compare_option_property(
    name: str,
    left: Any,  # noqa: ANN401
    right: Any,  # noqa: ANN401
    equal: Equality = eq,
) -> PropertyComparison:
    """Compare two optional values, rendering an absent value as <none>."""
    if left is None and right is None:
        return PropertyUnchanged(name, NONE)

    if left is None or right is None:
        return PropertyChanged(
            name,
            NONE if left is None else str(left),
            NONE if right is None else str(right),
        )

    if equal(left, right):
        return PropertyUnchanged(name, str(left))
    return PropertyChanged(name, str(left), str(right))


def compare_option_property_ignore_whitespace(
    name: str,
    left: Any,  # noqa: ANN401
    right: Any,  # noqa: ANN401
) -> PropertyComparison:
    """Compare two optional text values, ignoring whitespace differences."""
    return compare_option_property(
        name,
        left,
        right,
        lambda a, b: equal_ignore_whitespace(str(a), str(b)),
    )


def required(*names: str) -> tuple[PropertyRule, ...]:
    """Declare properties that are always present on both sides."""
    return tuple((name, compare_property) for name in names)


def optional(*names: str) -> tuple[PropertyRule, ...]:
    """Declare properties that may be absent."""
    return tuple((name, compare_option_property) for name in names)


def compare_properties(
    left: Any,  # noqa: ANN401
    right: Any,  # noqa: ANN401
    properties: Iterable[PropertyRule],
) -> Report[PropertyComparison]:
    """Compare the named fields of two rows, in declaration order."""
    return Report(
        Kind.PROPERTY,
        tuple(
            compare(name, getattr(left, name), getattr(right, name))
            for name, compare in properties
        ),
    )
