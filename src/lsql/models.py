"""
This module defines the Pydantic models for the remote service's wire contract.

They cover both call shapes the client makes: the synchronous validation and
completion request, and the live query connection with its opening message
and the typed frames streamed back.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LintType(str, Enum):
    """Severity of a validation diagnostic."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


BLOCKING_LINT_TYPES = frozenset({LintType.WARNING, LintType.ERROR})


class Lint(BaseModel):
    """
    A validation diagnostic.

    Attributes:
        type: Severity; `warning` and `error` stop the statement from running.
        text: Human-readable description.
        line: 1-based line the diagnostic points at, when known.
        column: 1-based column the diagnostic points at, when known.
    """

    type: LintType
    text: str = ""
    line: int | None = None
    column: int | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def is_blocking(self) -> bool:
        return self.type in BLOCKING_LINT_TYPES

    def describe(self) -> str:
        """One-line rendering used by the shell and the validate command."""
        location = f"{self.line}:{self.column} " if self.line is not None else ""
        return f"[{self.type.value}] {location}{self.text}"


class Suggestion(BaseModel):
    """A completion candidate: `display` is inserted, `text` describes it."""

    display: str
    text: str = ""


class ValidationRequest(BaseModel):
    """Body of the validation call; `caret` is ignored for full-statement checks."""

    model_config = ConfigDict(populate_by_name=True)

    sql_text: str = Field(..., alias="sqlText")
    caret: int = 0


class ValidationResult(BaseModel):
    """Lints and suggestions for one validation request. Never cached."""

    lints: list[Lint] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)

    @field_validator("lints", "suggestions", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def blocking_lints(self) -> list[Lint]:
        """Lints of severity warning or error."""
        return [lint for lint in self.lints if lint.is_blocking]


class LiveRequest(BaseModel):
    """First message sent once the live connection is established."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    sql: str
    live: bool = False
    stats_every: int = Field(0, alias="statsEveryHintSeconds")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)


class FrameType(str, Enum):
    """Kinds of frames the live connection dispatches."""

    RECORD = "record"
    STOP = "stop"
    ERROR = "error"
    INVALID_REQUEST = "invalidRequest"
    STATS = "stats"

    @classmethod
    def parse(cls, raw: str) -> "FrameType | None":
        """Case-insensitive lookup; returns None for kinds the client does not handle."""
        key = raw.replace("_", "").replace("-", "").lower()
        return _FRAME_ALIASES.get(key)


_FRAME_ALIASES = {
    "record": FrameType.RECORD,
    "stop": FrameType.STOP,
    "end": FrameType.STOP,
    "error": FrameType.ERROR,
    "invalidrequest": FrameType.INVALID_REQUEST,
    "stats": FrameType.STATS,
}


class RecordData(BaseModel):
    """Payload of a `record` frame. Key and value are already decoded JSON."""

    key: Any = None
    value: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class StopData(BaseModel):
    """Completion counters carried by a `stop` frame."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    is_time_remaining: bool | None = Field(None, alias="isTimeRemaining")
    is_topic_end: bool | None = Field(None, alias="isTopicEnd")
    is_stopped: bool | None = Field(None, alias="isStopped")
    total_records: int | None = Field(None, alias="totalRecords")
    skipped_records: int | None = Field(None, alias="skippedRecords")
    records_limit: int | None = Field(None, alias="recordsLimit")
    total_size_read: int | None = Field(None, alias="totalSizeRead")
    size: int | None = None
    offsets: list[dict[str, Any]] | None = None


class LiveFrame(BaseModel):
    """
    One message received over the live connection.

    `data` stays untyped here; the accessors below decode it according to the
    frame kind. Frames are consumed exactly once and never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    data: Any = None
    correlation_id: int | None = Field(None, alias="correlationId")

    @classmethod
    def parse(cls, raw: str | bytes) -> "LiveFrame":
        """Decode one wire message. Raises ValueError when it is not a frame."""
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return cls.model_validate(payload)

    @property
    def kind(self) -> FrameType | None:
        return FrameType.parse(self.type)

    @property
    def record(self) -> RecordData:
        return RecordData.model_validate(self.data or {})

    @property
    def stop(self) -> StopData:
        return StopData.model_validate(self.data or {})

    @property
    def stats(self) -> dict[str, Any]:
        return dict(self.data) if isinstance(self.data, dict) else {"stats": self.data}

    @property
    def message(self) -> str:
        """Human-readable text of an error or invalid-request frame."""
        if isinstance(self.data, dict):
            return str(self.data.get("message") or self.data.get("error") or json.dumps(self.data))
        if self.data is None:
            return ""
        return str(self.data)
