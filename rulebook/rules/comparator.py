"""
Operator semantics for condition comparisons.

All comparisons are loosely typed: operands are normalized to strings for
equality and pattern operators, and to floats for ordering operators when both
sides are numeric. Nothing in this module raises; an operator that cannot be
applied to its operands simply does not match.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, Iterable

from rulebook.core.coercion import exists, is_numeric, is_truthy, stringify
from rulebook.core.logging import get_logger

logger = get_logger(__name__)


class Operator(str, Enum):
    """Canonical comparison operators."""

    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    REGEXP = "REGEXP"
    IN = "IN"
    NOT_IN = "NOT IN"
    EXISTS = "EXISTS"
    NOT_EXISTS = "NOT EXISTS"
    IS = "IS"
    IS_NOT = "IS NOT"


_ALIASES = {
    "==": Operator.EQ,
    "<>": Operator.NE,
}

_DELIMITED_RE = re.compile(r"^/(.*)/([imsx]*)$", re.DOTALL)
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def normalize_operator(operator: Any) -> str:
    """Trim and uppercase an operator. Non-strings fall back to '='."""
    if not isinstance(operator, str):
        return Operator.EQ.value
    normalized = " ".join(operator.strip().upper().split())
    alias = _ALIASES.get(normalized)
    return alias.value if alias else normalized


def _as_number(value: Any) -> int | float:
    """Numeric operand for ordering. Ints stay exact so huge values still compare."""
    if isinstance(value, int):
        return value
    return float(value)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return list(value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


# =============================================================================
# Pattern matching
# =============================================================================


def glob_to_regex(pattern: str) -> str:
    """Translate a * / ? wildcard pattern into an anchored regex."""
    escaped = re.escape(pattern)
    return "^" + escaped.replace(r"\*", ".*").replace(r"\?", ".") + "$"


def like_match(value: str, pattern: str) -> bool:
    """Case-insensitive wildcard match (* any run, ? exactly one char)."""
    return re.match(glob_to_regex(pattern), value, re.IGNORECASE) is not None


def compile_delimited(pattern: str) -> re.Pattern | None:
    """Compile a '/body/flags' pattern. Returns None when not delimited or invalid."""
    found = _DELIMITED_RE.match(pattern)
    if not found:
        return None
    body, flag_chars = found.groups()
    flags = 0
    for char in flag_chars:
        flags |= _REGEX_FLAGS[char]
    try:
        return re.compile(body, flags)
    except re.error:
        logger.debug("invalid_regex", pattern=pattern)
        return None


def is_delimited(pattern: str) -> bool:
    """True if the pattern is wrapped in slashes (optionally followed by flags)."""
    return _DELIMITED_RE.match(pattern) is not None


def regexp_match(value: str, pattern: str) -> bool:
    """Match against a /delimited/ regex, or fall back to a wildcard pattern."""
    if is_delimited(pattern):
        compiled = compile_delimited(pattern)
        return compiled is not None and compiled.search(value) is not None
    return like_match(value, pattern)


def name_matches(name: str, pattern: str) -> bool:
    """Match an entry name (cookie, header, param) against a name pattern.

    /regex/ patterns are searched, patterns containing * or ? are globbed
    case-insensitively, anything else is an exact case-insensitive match.
    """
    if is_delimited(pattern):
        compiled = compile_delimited(pattern)
        return compiled is not None and compiled.search(name) is not None
    if "*" in pattern or "?" in pattern:
        return like_match(name, pattern)
    return name.lower() == pattern.lower()


# =============================================================================
# Comparison
# =============================================================================


def compare(actual: Any, expected: Any, operator: Any = "=") -> bool:
    """Compare an actual value against an expected value.

    Args:
        actual: Value extracted from the context
        expected: Value from the condition configuration
        operator: Operator string (case and whitespace insensitive)

    Returns:
        True if the comparison holds. Unknown operators return False.
    """
    op = normalize_operator(operator)
    actual_str = stringify(actual)
    expected_str = stringify(expected)

    if op == Operator.EQ:
        return actual_str == expected_str
    if op == Operator.NE:
        return actual_str != expected_str

    if op in (Operator.GT, Operator.GE, Operator.LT, Operator.LE):
        if not (is_numeric(actual) and is_numeric(expected)):
            return False
        try:
            left, right = _as_number(actual), _as_number(expected)
        except (OverflowError, ValueError):
            return False
        if op == Operator.GT:
            return left > right
        if op == Operator.GE:
            return left >= right
        if op == Operator.LT:
            return left < right
        return left <= right

    if op == Operator.LIKE:
        return like_match(actual_str, expected_str)
    if op == Operator.NOT_LIKE:
        return not like_match(actual_str, expected_str)
    if op == Operator.REGEXP:
        return regexp_match(actual_str, expected_str)

    if op == Operator.IN:
        return actual_str in [stringify(item) for item in _as_list(expected)]
    if op == Operator.NOT_IN:
        return actual_str not in [stringify(item) for item in _as_list(expected)]

    if op == Operator.EXISTS:
        return exists(actual)
    if op == Operator.NOT_EXISTS:
        return not exists(actual)

    if op == Operator.IS:
        return is_truthy(actual) == is_truthy(expected)
    if op == Operator.IS_NOT:
        return is_truthy(actual) != is_truthy(expected)

    logger.debug("unknown_operator", operator=op)
    return False


def reduce_matches(matches: Iterable[bool], match_type: Any) -> bool:
    """Reduce a list of booleans by match type.

    'all' -> AND, 'none' -> nothing matched, anything else -> OR.
    """
    results = list(matches)
    if match_type == "all":
        return all(results)
    if match_type == "none":
        return not any(results)
    return any(results)


def compare_many(
    actual: Any,
    expected_values: Iterable[Any],
    operator: Any = "=",
    match_type: Any = "any",
) -> bool:
    """Compare one actual value against each expected value and reduce."""
    return reduce_matches(
        (compare(actual, expected, operator) for expected in expected_values),
        match_type,
    )
