"""Render Claude Code ``stream-json`` events into console text.

:func:`render` is the entry point: one JSON line in, one display block (or
``None`` for "nothing to show") out.  It never raises; undecodable input
and malformed known events are skipped, unknown event types get a short
diagnostic line.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from agent_trace.models import (
    AssistantTurn,
    DocumentItem,
    Event,
    FinalResult,
    ImageItem,
    OtherItem,
    SystemInit,
    TextItem,
    ToolResult,
    ToolUse,
    Unrecognized,
    UserToolResult,
    parse_event,
)
from agent_trace.payload import format_payload
from agent_trace.text import (
    INDENT,
    LINE_BUDGET,
    SCALAR_BUDGET,
    filter_tool_input,
    format_param,
    group_thousands,
    loads,
    normalize_tool_name,
    to_json,
    truncate,
)


logger = logging.getLogger(__name__)

TOOL_ID_PREFIX = 8


# ---------------------------------------------------------------------------
# Tool results
# ---------------------------------------------------------------------------


def _error_message(result: ToolResult) -> str:
    if result.error:
        return result.error
    for item in result.content:
        if isinstance(item, TextItem) and item.text.strip():
            return truncate(item.text.strip(), SCALAR_BUDGET)
    return 'Unknown error'


def render_tool_result(result: ToolResult) -> str:
    """Render one tool_result content item as an indented block."""
    out = '\n📊 Tool Result'
    if result.tool_use_id:
        out += f' [{result.tool_use_id[:TOOL_ID_PREFIX]}]'
    out += ':\n'

    if result.is_error:
        out += f'{INDENT}❌ Error: {_error_message(result)}\n'
        if result.error_details:
            out += f'{INDENT}Details: {result.error_details}\n'
        return out.rstrip()

    for item in result.content:
        if isinstance(item, TextItem):
            text = item.text.strip()
            if text:
                out += format_payload(text)
        elif isinstance(item, ImageItem):
            out += f'{INDENT}📷 [Image content]\n'
        elif isinstance(item, DocumentItem):
            out += f'{INDENT}📄 [Document: {item.name or "unnamed"}]\n'
        elif isinstance(item, OtherItem):
            out += f'{INDENT}ℹ️ [{item.type_tag}]: {truncate(to_json(item.raw), LINE_BUDGET)}\n'

    return out.rstrip()


# ---------------------------------------------------------------------------
# Event variants
# ---------------------------------------------------------------------------


def _render_system(event: SystemInit) -> str:
    return f'🔧 System initialized (session: {event.session_id}, model: {event.model})'


def _render_text(text: str) -> str:
    lines = text.split('\n')
    if len(lines) == 1:
        return f'\n💭 Claude: {text}\n'
    return '\n💭 Claude:\n' + ''.join(f'{INDENT}{line}\n' for line in lines)


def _render_tool_use(tool: ToolUse) -> str:
    out = f'\n🔧 Using tool: {normalize_tool_name(tool.name)}\n'
    for key, value in filter_tool_input(tool.input).items():
        out += f'{INDENT}→ {key}: {format_param(value)}\n'
    return out


def _render_assistant(event: AssistantTurn) -> str:
    out = ''
    for item in event.content:
        if isinstance(item, TextItem):
            out += _render_text(item.text)
        elif isinstance(item, ToolUse):
            out += _render_tool_use(item)
    return out


def _render_user(event: UserToolResult) -> str | None:
    blocks = [render_tool_result(item) for item in event.content if isinstance(item, ToolResult)]
    if not blocks:
        return None
    return '\n'.join(blocks)


def _render_result(event: FinalResult) -> str:
    if event.is_error:
        out = f'\n❌ Error: {event.result or "Unknown error"}'
        if event.error_code:
            out += f' (Code: {event.error_code})'
        return out

    out = '\n✅ Success'
    if event.duration_ms is not None:
        out += f' ({event.duration_ms / 1000:.1f}s)'
    if event.total_cost_usd is not None:
        out += f' - Cost: ${event.total_cost_usd:.4f}'
    tokens = event.total_tokens
    if tokens is not None:
        out += f' - Tokens: {group_thousands(tokens)}'
    return out


def _render_unrecognized(event: Unrecognized) -> str:
    return f'\n🔍 [{event.type_tag}] {truncate(to_json(event.raw, compact=True), LINE_BUDGET)}'


def render_event(event: Event) -> str | None:
    """Render a decoded event; ``None`` means there is nothing to show."""
    if isinstance(event, SystemInit):
        return _render_system(event)
    if isinstance(event, AssistantTurn):
        return _render_assistant(event)
    if isinstance(event, UserToolResult):
        return _render_user(event)
    if isinstance(event, FinalResult):
        return _render_result(event)
    if isinstance(event, ToolResult):
        return render_tool_result(event)
    if isinstance(event, Unrecognized):
        return _render_unrecognized(event)
    return None


def render(raw_json_text: str) -> str | None:
    """Render one JSON-encoded trace event, or return None to skip it."""
    try:
        data = loads(raw_json_text)
    except (TypeError, ValueError, RecursionError):
        logger.debug('Skipping non-JSON line: %.80r', raw_json_text)
        return None

    try:
        event = parse_event(data)
    except ValidationError as exc:
        logger.debug('Skipping malformed %s event: %s', data.get('type'), exc)
        return None

    if event is None:
        return None
    return render_event(event)
