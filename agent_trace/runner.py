"""Run the Claude Code CLI and stream its ``stream-json`` output.

The CLI is started without a shell in ``--verbose --output-format
stream-json`` mode; each stdout line is rendered and handed to a callback,
stderr is passed straight through (login URLs and similar show up there).
"""

from __future__ import annotations

import logging
import subprocess
import sys
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from agent_trace.constants import AGENT_TIMEOUT, CLAUDE_BIN
from agent_trace.render import render
from agent_trace.text import loads


logger = logging.getLogger(__name__)


@dataclass
class AgentRun:
    """Outcome of one agent invocation."""

    exit_code: int = 1
    timed_out: bool = False
    lines: int = 0
    result: dict = field(default_factory=dict)


def build_command(
    prompt: str,
    *,
    args: Sequence[str] = (),
    claude_bin: str = CLAUDE_BIN,
) -> list[str]:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValueError('prompt is required')
    return [claude_bin, '-p', prompt, '--verbose', '--output-format', 'stream-json', *args]


def _stop(process: subprocess.Popen) -> None:
    process.terminate()
    try:
        process.wait(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def run_agent(
    prompt: str,
    *,
    args: Sequence[str] = (),
    cwd: str | Path | None = None,
    timeout: int = AGENT_TIMEOUT,
    on_block: Callable[[str], None] | None = None,
    log_path: Path | None = None,
    claude_bin: str = CLAUDE_BIN,
) -> AgentRun:
    """Launch the agent, render its output as it streams, return an AgentRun.

    Raises FileNotFoundError when *claude_bin* cannot be executed.
    """
    cmd = build_command(prompt, args=args, claude_bin=claude_bin)
    run = AgentRun()

    log_file = None
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_file = open(log_path, 'w')

    try:
        logger.info('Launching %s (timeout=%ds)', claude_bin, timeout)
        process = subprocess.Popen(
            cmd,
            cwd=str(cwd) if cwd else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=sys.stderr,
            text=True,
            bufsize=1,
        )
        try:
            _stream(process, run, timeout=timeout, on_block=on_block, log_file=log_file)
            process.wait()
            run.exit_code = process.returncode or 0
        finally:
            if process.poll() is None:
                _stop(process)
    finally:
        if log_file is not None:
            log_file.close()

    logger.info('Agent exited with code %d after %d lines', run.exit_code, run.lines)
    return run


def _stream(
    process: subprocess.Popen,
    run: AgentRun,
    *,
    timeout: int,
    on_block: Callable[[str], None] | None,
    log_file: TextIO | None,
) -> None:
    start_time = time.monotonic()
    for line in process.stdout:  # type: ignore[union-attr]
        if time.monotonic() - start_time > timeout:
            logger.warning('Agent timed out after %d seconds, terminating', timeout)
            _stop(process)
            run.timed_out = True
            return

        stripped = line.strip()
        if not stripped:
            continue
        run.lines += 1

        if log_file is not None:
            log_file.write(stripped + '\n')
            log_file.flush()

        try:
            event = loads(stripped)
        except (ValueError, RecursionError):
            # Non-JSON output (e.g. npm warnings) is passed through as-is
            print(stripped, file=sys.stderr)
            continue

        if isinstance(event, dict) and event.get('type') == 'result':
            run.result = event

        block = render(stripped)
        if block is not None and on_block is not None:
            on_block(block)
