"""Stream glue: feed agent output lines through :func:`render` and print them.

The renderer itself is pure; everything that touches a clock or a file
handle lives here.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import TextIO

from agent_trace.render import render


def timestamp_block(block: str) -> str:
    ts = datetime.now().strftime('%H:%M:%S')
    body = block.lstrip('\n')
    return f'[{ts}] {body}'


def iter_rendered(lines: Iterable[str]) -> Iterator[str]:
    """Yield the display block for every line that has something to show."""
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        block = render(stripped)
        if block is not None:
            yield block


def display_event(line: str, *, file: TextIO | None = None, timestamps: bool = False) -> bool:
    """Render one ``stream-json`` line and print it.

    Returns True when something was printed.
    """
    block = render(line)
    if block is None:
        return False
    if timestamps:
        block = timestamp_block(block)
    print(block, file=file if file is not None else sys.stderr, flush=True)
    return True
