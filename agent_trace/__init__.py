"""Human-readable rendering of Claude Code ``stream-json`` traces."""

from agent_trace.models import (
    AssistantTurn,
    FinalResult,
    SystemInit,
    ToolResult,
    Unrecognized,
    UserToolResult,
    parse_event,
)
from agent_trace.payload import format_payload
from agent_trace.render import render, render_event, render_tool_result
from agent_trace.runner import AgentRun, build_command, run_agent
from agent_trace.stream import display_event, iter_rendered
from agent_trace.text import filter_tool_input, normalize_tool_name, truncate


__all__ = [
    'AgentRun',
    'AssistantTurn',
    'FinalResult',
    'SystemInit',
    'ToolResult',
    'Unrecognized',
    'UserToolResult',
    'build_command',
    'display_event',
    'filter_tool_input',
    'format_payload',
    'iter_rendered',
    'normalize_tool_name',
    'parse_event',
    'render',
    'render_event',
    'render_tool_result',
    'run_agent',
    'truncate',
]
