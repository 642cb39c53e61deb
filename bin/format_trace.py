#!/usr/bin/env python3
"""Render Claude Code ``stream-json`` traces as readable console output.

Two modes:
  1. Replay: render JSONL files (or stdin) produced by
     ``claude -p ... --verbose --output-format stream-json``.
  2. Live: run the agent with ``--prompt`` and render its stream as it arrives.

Extra arguments after ``--`` are forwarded to the agent CLI in live mode.
"""

import argparse
import logging
import sys
from pathlib import Path

from agent_trace.constants import AGENT_TIMEOUT, TIMESTAMPS
from agent_trace.runner import run_agent
from agent_trace.stream import display_event, timestamp_block


logger = logging.getLogger(__name__)


def replay(paths: list[str], *, timestamps: bool = False) -> int:
    """Render every line of *paths* (``-`` means stdin) to stdout."""
    shown = 0
    for path in paths or ['-']:
        if path == '-':
            shown += _replay_stream(sys.stdin, timestamps=timestamps)
            continue
        with open(path, encoding='utf-8') as f:
            shown += _replay_stream(f, timestamps=timestamps)
    logger.debug('Rendered %d events', shown)
    return 0


def _replay_stream(stream, *, timestamps: bool) -> int:
    shown = 0
    for line in stream:
        if display_event(line, file=sys.stdout, timestamps=timestamps):
            shown += 1
    return shown


def live(prompt: str, extra: list[str], *, cwd: Path | None, timeout: int, timestamps: bool) -> int:
    """Run the agent and render its output; returns the process exit code."""

    def show(block: str) -> None:
        print(timestamp_block(block) if timestamps else block, flush=True)

    run = run_agent(prompt, args=extra, cwd=cwd, timeout=timeout, on_block=show)
    if run.timed_out:
        print(f'Error: agent timed out after {timeout}s', file=sys.stderr)
        return 1
    return run.exit_code


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    # Everything after '--' is forwarded to the agent
    extra: list[str] = []
    if '--' in argv:
        sep = argv.index('--')
        extra = argv[sep + 1 :]
        argv = argv[:sep]

    parser = argparse.ArgumentParser(
        description='Render Claude Code stream-json traces as readable console output.',
    )
    parser.add_argument(
        'files',
        nargs='*',
        help='JSONL trace files to render (default: stdin)',
    )
    parser.add_argument(
        '--prompt',
        type=str,
        default=None,
        help='Run the agent with this prompt and render its output live',
    )
    parser.add_argument(
        '--cwd',
        type=Path,
        default=None,
        help='Working directory for the agent (live mode)',
    )
    parser.add_argument(
        '--timeout',
        type=int,
        default=AGENT_TIMEOUT,
        help=f'Seconds before the agent is terminated (default: {AGENT_TIMEOUT})',
    )
    parser.add_argument(
        '--timestamps',
        action='store_true',
        default=TIMESTAMPS,
        help='Prefix each rendered block with the local time',
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging',
    )

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        stream=sys.stderr,
    )

    if args.prompt is not None:
        if args.files:
            parser.error('--prompt cannot be combined with trace files.')
        if not args.prompt.strip():
            parser.error('prompt is required')
        try:
            return live(args.prompt, extra, cwd=args.cwd, timeout=args.timeout, timestamps=args.timestamps)
        except FileNotFoundError as exc:
            print(f'Error: {exc}', file=sys.stderr)
            return 1

    if extra:
        parser.error('Agent arguments after -- require --prompt.')

    try:
        return replay(args.files, timestamps=args.timestamps)
    except FileNotFoundError as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
