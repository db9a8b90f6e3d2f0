"""
Interactive session state: display toggles and the statement buffer.

One `Session` lives for the whole shell process and is passed by reference to
the statement executor and to the live query handlers. Only the shell's own
thread writes to it; handlers running on the connection's read thread only
read the toggles, which is why no lock is needed.
"""

from dataclasses import dataclass, field, fields
from enum import Enum


class ReplState(Enum):
    """Where the statement executor is in its cycle."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    VALIDATING = "validating"
    EXECUTING = "executing"


# `!command` -> DisplayToggles attribute
TOGGLE_COMMANDS = {
    "!pretty": "pretty",
    "!keys": "keys",
    "!keys-only": "keys_only",
    "!meta": "meta",
    "!stats": "stats",
    "!live-stream": "live_stream",
}


@dataclass
class DisplayToggles:
    """Independent booleans controlling how records are projected and printed."""

    keys: bool = False
    keys_only: bool = False
    meta: bool = False
    stats: bool = False
    live_stream: bool = False
    pretty: bool = False

    def flip(self, name: str) -> bool:
        """Invert one toggle and return its new value."""
        value = not getattr(self, name)
        setattr(self, name, value)
        return value

    def describe(self) -> str:
        return "Options: " + ", ".join(f"{f.name.replace('_', '-')}={str(getattr(self, f.name)).lower()}" for f in fields(self))


@dataclass
class Session:
    """Everything the shell mutates between two input lines."""

    toggles: DisplayToggles = field(default_factory=DisplayToggles)
    buffer: list[str] = field(default_factory=list)
    state: ReplState = ReplState.IDLE
    interactive: bool = True
    prompt: str = "lenses-sql> "
    continuation_prompt: str = "......... > "
    base_prompt: str = field(init=False)

    def __post_init__(self) -> None:
        self.base_prompt = self.prompt

    @property
    def buffer_text(self) -> str:
        return " ".join(self.buffer)

    def accumulate(self, line: str) -> None:
        """Keep an unterminated line and switch to the continuation prompt."""
        self.buffer.append(line)
        self.state = ReplState.ACCUMULATING
        self.prompt = self.continuation_prompt

    def statement_with(self, line: str) -> str:
        """The full statement formed by the buffer and a terminating line."""
        return " ".join([*self.buffer, line])

    def reset(self) -> None:
        """Drop the buffer and go back to the idle prompt."""
        self.buffer.clear()
        self.state = ReplState.IDLE
        self.prompt = self.base_prompt
