"""Command line parsing."""

from __future__ import annotations

import logging

from smallshell.models import Command

logger = logging.getLogger(__name__)

DEFAULT_MAX_ARGS = 5
EXIT_COMMAND = "exit"


def parse_line(line: str, max_args: int = DEFAULT_MAX_ARGS) -> Command | None:
    """Parse one input line into a Command.

    Returns None for a blank line. A trailing ``&`` marks the command as
    background and is never part of argv. Lines with more than
    ``max_args`` arguments are truncated and flagged with ``overflow``;
    the caller warns but still runs the truncated command.
    """
    raw = line[:-1] if line.endswith("\n") else line

    background = False
    body = raw
    if body.endswith("&"):
        body = body[:-1]
        background = True

    tokens = body.split()
    if not tokens:
        return None

    capacity = max_args + 1
    overflow = len(tokens) > capacity
    if overflow:
        logger.warning("Dropping %d argument(s) beyond capacity: %s", len(tokens) - capacity, tokens[capacity:])
        tokens = tokens[:capacity]

    return Command(raw=raw, argv=tokens, background=background, overflow=overflow)


def is_exit(command: Command) -> bool:
    """The literal ``exit`` line, without arguments or background flag."""
    return command.raw == EXIT_COMMAND and not command.background
