"""Type definitions for the throughput analyzer.

This module provides TypedDict definitions for the raw JSONL record shapes
and the lightweight containers the parser hands to turn segmentation.
Report-facing structures live in models.py.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, TypedDict
from typing_extensions import NotRequired


EventType = Literal['user', 'assistant']


class TokenUsage(TypedDict):
    """Token usage reported on an assistant message."""
    input_tokens: int
    output_tokens: int
    cache_read_input_tokens: NotRequired[int]
    cache_creation_input_tokens: NotRequired[int]


class RawMessage(TypedDict):
    """Nested message payload of a session record."""
    role: NotRequired[str]
    model: NotRequired[str]
    usage: NotRequired[TokenUsage]


class RawRecord(TypedDict):
    """One line of a session JSONL file."""
    type: str
    timestamp: NotRequired[str | int | float]
    sessionId: NotRequired[str]
    uuid: NotRequired[str]
    message: NotRequired[RawMessage]


@dataclass(frozen=True)
class Event:
    """A user or assistant record retained for turn reconstruction."""
    type: EventType
    timestamp: datetime
    usage: Optional[TokenUsage] = None
    role: Optional[str] = None
    session_id: Optional[str] = None
    uuid: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class ParseError:
    """A line that could not be decoded."""
    line_number: int
    line: str
    error: str

    def to_dict(self) -> dict:
        return {
            'lineNumber': self.line_number,
            'line': self.line,
            'error': self.error,
        }


@dataclass
class ParseResult:
    """Events and line failures produced from one file's content."""
    events: list[Event] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)


@dataclass
class Turn:
    """One user message and the assistant messages answering it."""
    user_timestamp: Optional[datetime] = None
    assistant_messages: list[Event] = field(default_factory=list)
