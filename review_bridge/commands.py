"""Parsing of slash commands in comment bodies."""

from dataclasses import dataclass
import re


COMMAND_PATTERN = re.compile(r"^\s*/([A-Za-z]+).*$")
_ARGS_PATTERN = re.compile(r"^\s*/[A-Za-z]+\s*(.*?)\s*$")


@dataclass
class CommandInvocation:
    """A single command line found in a comment."""

    name: str
    args: str


def is_command_only(body: str) -> bool:
    """Whether the body has content and every non-blank line of it is a command."""
    lines = [line for line in body.splitlines() if line.strip()]
    return bool(lines) and all(COMMAND_PATTERN.match(line) for line in lines)


def parse_commands(body: str) -> list[CommandInvocation]:
    """Extract the commands of a comment, in order of appearance."""
    commands = []
    for line in body.splitlines():
        match = COMMAND_PATTERN.match(line)
        if match:
            args = _ARGS_PATTERN.match(line).group(1)
            commands.append(CommandInvocation(name=match.group(1).lower(), args=args))
    return commands
