"""Sub-format detection for free-text tool output.

Tool results arrive as opaque text. :func:`format_payload` sniffs that text
and picks the first matching layout:

1. JSON (array, object or scalar)
2. messaging transcript (``[MM-DD HH:MM sender] message`` lines)
3. email / calendar record (``Subject:``, ``From:``, ``Start:`` fields)
4. file listing (``Name: x, Type: File, Size: y`` lines)
5. generic multi-line text
6. a single line

Every renderer returns newline-terminated lines indented for display under a
tool result header.  Nothing here raises on odd input.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from agent_trace.text import (
    FIELD_BUDGET,
    INDENT,
    LINE_BUDGET,
    NESTED_INDENT,
    SCALAR_BUDGET,
    format_value,
    humanize_key,
    loads,
    to_json,
    truncate,
)


LIST_FULL_MAX = 10
LIST_HEAD = 5
LIST_TAIL = 2
LINES_FULL_MAX = 20
LINES_HEAD = 10
LINES_TAIL = 2

PREFERRED_FIELDS = ('name', 'title', 'id', 'email', 'message', 'text')

EMAIL_MARKERS = ('Subject:', 'From:', 'Start:')
EMAIL_FIELDS = ('Subject:', 'From:', 'To:', 'Start:', 'End:', 'Location:')
EMAIL_LONG_FIELDS = ('Body:', 'Description:')

ARROW = '→'
CHAT_OPEN = '┌─'
CHAT_RULE = '───'
UNKNOWN_CHAT = 'Unknown'

_TIMESTAMP_RE = re.compile(r'\[\d{2}-\d{2}\s+\d{2}:\d{2}')
_CHAT_HEADER_RE = re.compile(r'┌─\s*(.+)')
_MESSAGE_RE = re.compile(r'^\s*[│|]?\s*\[(\d{2}-\d{2}\s+\d{2}:\d{2})(?:\s+([^\]]+))?\]\s*(.*)')
_BRACKETED_RE = re.compile(r'\[([^\]]+)\]\s*(.*)')


def _block(lines: list[str]) -> str:
    return ''.join(f'{line}\n' for line in lines)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def _format_list_item(item: object, index: int) -> str:
    if isinstance(item, dict):
        summary = [
            f'{key}: {truncate(_as_text(item[key]), FIELD_BUDGET)}' for key in PREFERRED_FIELDS if item.get(key)
        ]
        if summary:
            return f'{INDENT}{index}. {", ".join(summary)}'
    return f'{INDENT}{index}. {truncate(_as_text(item), LINE_BUDGET)}'


def _as_text(value: object) -> str:
    return value if isinstance(value, str) else to_json(value)


def _format_json_list(items: list) -> list[str]:
    if not items:
        return [f'{INDENT}📋 Empty list']

    total = len(items)
    lines = [f'{INDENT}📋 List ({total} items):']
    if total <= LIST_FULL_MAX:
        lines.extend(_format_list_item(item, i) for i, item in enumerate(items, 1))
        return lines

    omitted = total - LIST_HEAD - LIST_TAIL
    lines.extend(_format_list_item(item, i) for i, item in enumerate(items[:LIST_HEAD], 1))
    lines.append(f'{INDENT}... ({omitted} more items)')
    tail_start = total - LIST_TAIL + 1
    lines.extend(_format_list_item(item, i) for i, item in enumerate(items[-LIST_TAIL:], tail_start))
    return lines


def _format_json_object(data: dict) -> list[str]:
    if not data:
        return [f'{INDENT}📦 Empty object']
    lines = [f'{INDENT}📦 Data:']
    lines.extend(f'{NESTED_INDENT}• {humanize_key(str(key))}: {format_value(value)}' for key, value in data.items())
    return lines


def format_json(data: object) -> str:
    """Render an already-decoded JSON value."""
    if isinstance(data, list):
        return _block(_format_json_list(data))
    if isinstance(data, dict):
        return _block(_format_json_object(data))
    return _block([f'{INDENT}→ {to_json(data)}'])


# ---------------------------------------------------------------------------
# Messaging transcript
# ---------------------------------------------------------------------------


def is_transcript(text: str) -> bool:
    return bool(_TIMESTAMP_RE.search(text)) or CHAT_OPEN in text or ARROW in text


def _parse_transcript(text: str) -> dict[str, list[dict]]:
    chats: dict[str, list[dict]] = {}
    current: str | None = None

    for line in text.split('\n'):
        if not line.strip():
            continue

        if CHAT_OPEN in line or CHAT_RULE in line:
            header = _CHAT_HEADER_RE.search(line)
            if header:
                current = header.group(1).strip()
            continue

        match = _MESSAGE_RE.match(line)
        if match:
            timestamp, sender, body = match.groups()
            message = {
                'timestamp': timestamp.strip(),
                'sender': sender.strip() if sender else 'Me',
                'message': re.sub(rf'^{ARROW}\s*', '', body).strip(),
                'outgoing': not sender or body.startswith(ARROW),
            }
        elif '[' in line and ']' in line and _BRACKETED_RE.search(line):
            message = {
                'timestamp': '',
                'sender': UNKNOWN_CHAT,
                'message': line.strip(),
                'outgoing': ARROW in line,
            }
        else:
            continue

        chats.setdefault(current or UNKNOWN_CHAT, []).append(message)

    return chats


def format_transcript(text: str) -> str:
    lines = [f'{INDENT}💬 Messages:', '']
    for chat, messages in _parse_transcript(text).items():
        lines.append(f'{INDENT}{CHAT_OPEN} {chat}')
        for msg in messages:
            if msg['outgoing']:
                lines.append(f'{INDENT}│ [{msg["timestamp"]}] {ARROW} {msg["message"]}')
            else:
                lines.append(f'{INDENT}│ [{msg["timestamp"]} {msg["sender"]}] {msg["message"]}')
        lines.append('')
    return _block(lines)


# ---------------------------------------------------------------------------
# Email / calendar
# ---------------------------------------------------------------------------


def is_email_or_calendar(text: str) -> bool:
    return any(marker in text for marker in EMAIL_MARKERS)


def format_email_or_calendar(text: str) -> str:
    lines = [f'{INDENT}📧 Message Details:']
    for line in text.split('\n'):
        if not line.strip():
            continue
        if line.startswith(EMAIL_FIELDS):
            lines.append(f'{NESTED_INDENT}• {line.strip()}')
        elif line.startswith(EMAIL_LONG_FIELDS):
            field, _, value = line.partition(':')
            lines.append(f'{NESTED_INDENT}• {field}: {truncate(value.strip(), LINE_BUDGET)}')
        else:
            lines.append(f'{NESTED_INDENT}{truncate(line, LINE_BUDGET)}')
    return _block(lines)


# ---------------------------------------------------------------------------
# File listing
# ---------------------------------------------------------------------------


def is_file_listing(text: str) -> bool:
    return 'Type:' in text and ('File' in text or 'Folder' in text)


def _listing_fields(line: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for part in line.split(','):
        key, sep, value = part.strip().partition(':')
        if sep and key in ('Name', 'Type', 'Size') and key not in fields:
            fields[key] = value.strip()
    return fields


def format_file_listing(text: str) -> str:
    lines = [f'{INDENT}📁 Files:']
    for line in text.split('\n'):
        if not line.strip():
            continue
        if 'Type:' not in line:
            lines.append(f'{NESTED_INDENT}{truncate(line, LINE_BUDGET)}')
            continue
        fields = _listing_fields(line)
        name = fields.get('Name') or 'unnamed'
        if fields.get('Type') == 'Folder':
            lines.append(f'{NESTED_INDENT}📁 {name}/')
        else:
            size = fields.get('Size')
            suffix = f' ({size})' if size else ''
            lines.append(f'{NESTED_INDENT}📄 {name}{suffix}')
    return _block(lines)


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.split('\n') if line.strip()]


def is_multiline(text: str) -> bool:
    return len(_non_blank_lines(text)) > 1


def format_multiline(text: str) -> str:
    lines = _non_blank_lines(text)
    total = len(lines)
    if total <= LINES_FULL_MAX:
        return _block([f'{INDENT}{truncate(line, LINE_BUDGET)}' for line in lines])

    out = [f'{INDENT}📝 Output ({total} lines):']
    out.extend(f'{INDENT}{truncate(line, LINE_BUDGET)}' for line in lines[:LINES_HEAD])
    out.append(f'{INDENT}... ({total - LINES_HEAD - LINES_TAIL} more lines)')
    out.extend(f'{INDENT}{truncate(line, LINE_BUDGET)}' for line in lines[-LINES_TAIL:])
    return _block(out)


def format_single_line(text: str) -> str:
    if not text:
        return ''
    return _block([f'{INDENT}→ {truncate(text, SCALAR_BUDGET)}'])


def _always(text: str) -> bool:
    return True


TEXT_FORMATS: tuple[tuple[Callable[[str], bool], Callable[[str], str]], ...] = (
    (is_transcript, format_transcript),
    (is_email_or_calendar, format_email_or_calendar),
    (is_file_listing, format_file_listing),
    (is_multiline, format_multiline),
    (_always, format_single_line),
)


def format_payload(text: str) -> str:
    """Render one tool result text payload for the console."""
    try:
        data = loads(text)
    except (ValueError, RecursionError):
        pass
    else:
        return format_json(data)

    for matches, renderer in TEXT_FORMATS:
        if matches(text):
            return renderer(text)
    return ''
