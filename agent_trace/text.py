"""Truncation and small formatting helpers shared by every renderer."""

from __future__ import annotations

import json
import re


INDENT = '   '
NESTED_INDENT = '      '
ELLIPSIS = '...'

LINE_BUDGET = 100
SCALAR_BUDGET = 200
PARAM_BUDGET = 80
FIELD_BUDGET = 50

SENSITIVE_KEYS = frozenset({'user_google_email'})

_MCP_PREFIX_RE = re.compile(r'^mcp__[^_]+__')
_WORD_START_RE = re.compile(r'\b\w')


def truncate(text: str, limit: int) -> str:
    """Cut *text* to at most *limit* characters.

    The last three characters become ``...`` when something was cut, so
    truncating an already-truncated string with the same limit is a no-op.
    """
    if len(text) <= limit:
        return text
    if limit <= len(ELLIPSIS):
        return text[:limit]
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def title_words(text: str) -> str:
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), text)


def humanize_key(key: str) -> str:
    """``last_modified_at`` -> ``Last Modified At``."""
    return title_words(key.replace('_', ' '))


def normalize_tool_name(name: str) -> str:
    """Strip the ``mcp__<server>__`` prefix and title-case the rest."""
    return humanize_key(_MCP_PREFIX_RE.sub('', name))


def filter_tool_input(tool_input: object) -> dict:
    """Drop sensitive keys and empty values from a tool_use input mapping."""
    if not isinstance(tool_input, dict):
        return {}
    return {k: v for k, v in tool_input.items() if k not in SENSITIVE_KEYS and v is not None and v != ''}


def _reject_constant(name: str) -> object:
    raise ValueError(f'{name} is not valid JSON')


def loads(text: str | bytes) -> object:
    """Strict ``json.loads``: ``NaN`` and ``Infinity`` are decode errors."""
    return json.loads(text, parse_constant=_reject_constant)


def to_json(value: object, *, compact: bool = False) -> str:
    if compact:
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    return json.dumps(value, ensure_ascii=False)


def group_thousands(value: int | float) -> str:
    """Format a number with thousands separators and at most 3 decimals."""
    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return str(value)
        if not value.is_integer():
            return f'{value:,.3f}'.rstrip('0').rstrip('.')
        value = int(value)
    return f'{value:,}'


def format_value(value: object) -> str:
    """Render one JSON value for a key/value line."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return '✓' if value else '✗'
    if isinstance(value, (int, float)):
        return group_thousands(value)
    if isinstance(value, str):
        return f'"{truncate(value, LINE_BUDGET)}"'
    if isinstance(value, list):
        return f'[{len(value)} items]'
    if isinstance(value, dict):
        return f'{{{len(value)} fields}}'
    return str(value)


def format_param(value: object) -> str:
    """Render one tool_use parameter value."""
    if isinstance(value, str):
        if len(value) > PARAM_BUDGET:
            return f'"{truncate(value, PARAM_BUDGET)}"'
        return to_json(value)
    if isinstance(value, (dict, list)):
        return truncate(to_json(value, compact=True), PARAM_BUDGET)
    return to_json(value)
