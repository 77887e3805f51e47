"""Named value transformations applied to extracted field values."""

import logging
import re
from collections.abc import Callable

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

Transformation = Callable[[str], str]

_FIRST_INTEGER = re.compile(r'\d+')


# =============================================================================
# TRANSFORMATION REGISTRY - Users can register custom transformations
# =============================================================================


class TransformationRegistry:
    """Global registry of transformations, addressed by the names used in field rules."""

    _transforms: dict[str, Transformation] = {}

    @classmethod
    def register(cls, name: str, func: Transformation) -> Transformation:
        """Register a transformation under a name."""
        cls._transforms[name] = func
        return func

    @classmethod
    def get(cls, name: str) -> Transformation | None:
        """Get a registered transformation by name."""
        return cls._transforms.get(name)

    @classmethod
    def get_all(cls) -> dict[str, Transformation]:
        """Get all registered transformations."""
        return cls._transforms.copy()


def transformation(name: str) -> Callable[[Transformation], Transformation]:
    """Register the decorated function as a transformation.

    Example:
        >>> @transformation('collapse_spaces')
        ... def collapse_spaces(value: str) -> str:
        ...     return ' '.join(value.split())

    """

    def decorator(func: Transformation) -> Transformation:
        return TransformationRegistry.register(name, func)

    return decorator


def apply_transformations(value: str, names: list[str]) -> str:
    """Apply transformations in order.

    Unknown names are skipped.

    Args:
        value: Extracted value
        names: Transformation names from a field rule

    Returns:
        The transformed value.

    """
    for name in names:
        func = TransformationRegistry.get(name)
        if func is None:
            logger.debug('Ignoring unknown transformation %r', name)
            continue
        value = func(value)
    return value


def parse_leading_int(value: str) -> int | None:
    """Parse the first integer in a value, ignoring thousands separators and spaces.

    Args:
        value: Text such as '$120,000 - $150,000'

    Returns:
        The first integer found, or None if there is none.

    """
    cleaned = value.replace(',', '').replace(' ', '')
    match = _FIRST_INTEGER.search(cleaned)
    if not match:
        return None
    return int(match.group(0))


# =============================================================================
# BUILT-IN TRANSFORMATIONS
# =============================================================================


@transformation('trim')
def trim(value: str) -> str:
    return value.strip()


@transformation('lowercase')
def lowercase(value: str) -> str:
    return value.lower()


@transformation('uppercase')
def uppercase(value: str) -> str:
    return value.upper()


@transformation('strip_html')
def strip_html(value: str) -> str:
    """Drop markup and keep the text content."""
    if '<' not in value:
        return value
    return BeautifulSoup(value, 'lxml').get_text(' ', strip=True)


@transformation('remove_commas')
def remove_commas(value: str) -> str:
    return value.replace(',', '')


@transformation('parse_int')
def parse_int(value: str) -> str:
    """Reduce the value to its first integer; unchanged when it has none."""
    number = parse_leading_int(value)
    return value if number is None else str(number)


@transformation('parse_date')
def parse_date(value: str) -> str:
    """Normalize a date to ISO 8601; unchanged when it cannot be parsed."""
    try:
        return date_parser.parse(value).isoformat()
    except (ValueError, OverflowError):
        return value
