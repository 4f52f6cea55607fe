"""Splits anonymizer script text into commands.

A script line starting with ``$`` begins an assignment command, a line
starting with ``/`` begins a path command and a line starting with ``#`` is
a comment. Any other line continues the command above it. Assignment and
path commands are split into a left side and a right side at the first
equal sign.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from ctp_anonymizer.script.exceptions import MalformedCommandError

_COMMAND_PREFIXES = ("$", "/", "#")


class CommandKind(Enum):
    ASSIGN = "assign"
    PATH = "path"
    COMMENT = "comment"


@dataclass(frozen=True)
class Command:
    """One script statement."""

    kind: CommandKind
    left: str = ""
    right: str = ""
    text: str = field(default="", compare=False)

    @classmethod
    def parse(cls, text: str) -> Command:
        """Classify *text* by its first character and split it at the first '='.

        Raises:
            MalformedCommandError: if an assignment or path command has no '='.
        """
        if text.startswith("$"):
            kind = CommandKind.ASSIGN
        elif text.startswith("/"):
            kind = CommandKind.PATH
        else:
            return cls(kind=CommandKind.COMMENT, text=text)

        left, sep, right = text.partition("=")
        if not sep:
            raise MalformedCommandError(f"No equal sign in command: {text.strip()!r}")
        return cls(kind=kind, left=left.strip(), right=right.strip(), text=text)

    @property
    def is_comment(self) -> bool:
        return self.kind is CommandKind.COMMENT


def parse_commands(script: str) -> Iterator[Command]:
    """Yield the commands of *script* in order.

    Continuation lines are appended to the command they belong to, each
    followed by a newline. Comment lines directly after a command body are
    consumed with it.

    Raises:
        MalformedCommandError: when a command without '=' is reached.
    """
    lines = iter(script.splitlines())
    line = next(lines, None)
    while line is not None:
        # The first line gets no newline, so a continuation line is glued
        # directly onto it: "/p = $a" then "\"-x\"" reads as the name $a"-x".
        # Scripts start continuation lines with whitespace to separate them.
        parts = [line]
        line = next(lines, None)
        while line is not None and not line.startswith(_COMMAND_PREFIXES):
            parts.append(line + "\n")
            line = next(lines, None)
        while line is not None and line.startswith("#"):
            line = next(lines, None)
        yield Command.parse("".join(parts))


def format_commands(commands: Iterable[Command]) -> str:
    """Render *commands* as canonical script text."""
    rendered: list[str] = []
    for command in commands:
        if command.is_comment:
            text = command.text.rstrip("\n")
            # A comment after the first command must follow a '#' line,
            # otherwise it would read back as a continuation.
            if rendered and not text.startswith("#"):
                text = "#\n" + text
            rendered.append(text)
        elif "\n" in command.right:
            # Only continuation lines carry a newline, so a multi-line right
            # side has to start on one.
            rendered.append(f"{command.left} =\n {command.right}")
        else:
            rendered.append(f"{command.left} = {command.right}")
    return "\n".join(rendered) + ("\n" if rendered else "")
