"""Shared constants for agent-trace.

All values are configurable via environment variables.
"""

from __future__ import annotations

import os


CLAUDE_BIN = os.environ.get('AGENT_TRACE_CLAUDE_BIN', 'claude')
AGENT_TIMEOUT = int(os.environ.get('AGENT_TRACE_TIMEOUT', '900'))
TIMESTAMPS = os.environ.get('AGENT_TRACE_TIMESTAMPS', '').strip().lower() in ('1', 'true', 'yes')
