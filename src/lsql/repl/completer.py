"""prompt_toolkit completer backed by the remote validation endpoint."""

import logging
import threading
from collections.abc import Iterable

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from ..errors import ValidationError
from ..session import Session
from ..validation import ValidationClient

logger = logging.getLogger(__name__)

OPTION_SUGGESTIONS = {
    "!keys": "Toggle printing message keys",
    "!keys-only": "Toggle printing keys only from message, no value",
    "!live-stream": "Toggle continuous query mode",
    "!meta": "Toggle printing message metadata",
    "!stats": "Toggle printing query stats",
    "!options": "Print current options",
    "!pretty": "Toggle pretty printing query output",
}


class SqlCompleter(Completer):
    """
    Completes `!` options locally and everything else through the server.

    The server sees the buffered lines plus the line being typed, with the
    caret shifted by the buffered length. Every request takes a generation
    number; when a newer keystroke has started another request by the time a
    response arrives, the stale suggestions are dropped. Wrapped in a
    `ThreadedCompleter`, this lets prompt_toolkit abandon a slow round trip
    instead of queueing behind it.
    """

    def __init__(self, session: Session, validator: ValidationClient):
        self.session = session
        self.validator = validator
        self._generation = 0
        self._lock = threading.Lock()

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        word = document.get_word_before_cursor(WORD=True)

        if word.startswith("!"):
            for option, description in OPTION_SUGGESTIONS.items():
                if option.startswith(word):
                    yield Completion(option, start_position=-len(word), display_meta=description)
            return

        if not document.text_before_cursor:
            return

        generation = self._next_generation()
        prefix = self.session.buffer_text + " " if self.session.buffer else ""
        sql = prefix + document.current_line
        caret = document.cursor_position_col + len(prefix)

        try:
            suggestions = self.validator.complete(sql, caret, word)
        except ValidationError as e:
            logger.debug("completion request failed: %s", e)
            return

        if not self._is_current(generation):
            logger.debug("dropping superseded completion #%d", generation)
            return

        for suggestion in suggestions:
            yield Completion(suggestion.display, start_position=-len(word), display_meta=suggestion.text)
