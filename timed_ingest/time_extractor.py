"""Timestamp extraction from object paths.

Date patterns use the custom format of the deployment configuration
(``yyyy-MM-dd``, ``yyyyMMddHH`` ...). A pattern containing ``%`` is taken as a
``strptime`` format instead.
"""

import logging
import re
from datetime import datetime, timezone

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

UNPARSED_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)

_TOKENS = {
    "yyyy": ("%Y", r"\d{4}"),
    "yy": ("%y", r"\d{2}"),
    "MM": ("%m", r"\d{2}"),
    "dd": ("%d", r"\d{2}"),
    "HH": ("%H", r"\d{2}"),
    "hh": ("%I", r"\d{2}"),
    "mm": ("%M", r"\d{2}"),
    "ss": ("%S", r"\d{2}"),
    "fff": ("%f", r"\d{3}"),
    "tt": ("%p", r"(?:AM|PM)"),
}
_TOKEN_RE = re.compile("|".join(sorted(_TOKENS, key=len, reverse=True)))

# Fixed widths for strptime directives; others match loosely.
_DIRECTIVES = {
    "Y": r"\d{4}",
    "y": r"\d{2}",
    "m": r"\d{2}",
    "d": r"\d{2}",
    "H": r"\d{2}",
    "I": r"\d{2}",
    "M": r"\d{2}",
    "S": r"\d{2}",
    "f": r"\d{6}",
    "p": r"(?:AM|PM)",
    "%": "%",
}
_DIRECTIVE_RE = re.compile(r"%(.)")
_REFERENCE_DATE = datetime(2000, 12, 28, 23, 59, 59, 999999)


def _split(pattern: str):
    """Yield (literal, directive, regex) triples for ``pattern``."""
    strptime_style = "%" in pattern
    position = 0
    for match in (_DIRECTIVE_RE if strptime_style else _TOKEN_RE).finditer(pattern):
        if strptime_style:
            directive, regex = match.group(0), _DIRECTIVES.get(match.group(1), r".+?")
        else:
            directive, regex = _TOKENS[match.group(0)]
        yield pattern[position:match.start()], directive, regex
        position = match.end()
    yield pattern[position:], "", ""


def to_strptime(pattern: str) -> str:
    if "%" in pattern:
        return pattern
    return "".join(literal + directive for literal, directive, _ in _split(pattern))


def to_regex(pattern: str) -> "re.Pattern[str]":
    """Anchored regex accepting exactly the widths ``pattern`` prescribes."""
    return re.compile(
        "".join(re.escape(literal) + regex for literal, _, regex in _split(pattern)),
        re.IGNORECASE,
    )


def pattern_width(pattern: str) -> int:
    """Number of characters a date written with ``pattern`` occupies."""
    if "%" in pattern:
        return len(_REFERENCE_DATE.strftime(pattern))
    return len(pattern)


def _parse(value: str, pattern: str) -> datetime:
    value, pattern = value.strip(), pattern.strip()
    if not to_regex(pattern).fullmatch(value):
        raise ValueError(f"'{value}' does not match '{pattern}'")
    parsed = datetime.strptime(value, to_strptime(pattern))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value: str, pattern: str) -> datetime:
    """Parse a configured date, raising ConfigurationError when it does not match."""
    try:
        return _parse(value, pattern)
    except ValueError as exc:
        raise ConfigurationError(
            f"Date '{value}' does not match pattern '{pattern}'"
        ) from exc


def extract_timestamp(object_url: str, marker: str, pattern: str) -> datetime:
    """Parse the date that follows the first occurrence of ``marker``.

    Returns UNPARSED_TIMESTAMP when the marker is absent or the text after it
    does not match ``pattern``.
    """
    if not object_url or not marker or not pattern or marker not in object_url:
        logger.error("The url %s does not contain the %s prefix", object_url, marker)
        return UNPARSED_TIMESTAMP

    start = object_url.index(marker) + len(marker)
    candidate = object_url[start:start + pattern_width(pattern)]
    try:
        return _parse(candidate, pattern)
    except ValueError:
        logger.error("The %s could not be parsed using the %s", candidate, pattern)
        return UNPARSED_TIMESTAMP
