"""JSONL parsing for session logs.

Each line is decoded on its own; a bad line is recorded and skipped so one
corrupt record never hides the rest of the session.
"""

import json

from ..config import PARSE_ERROR_EXCERPT_LENGTH, TRACKED_EVENT_TYPES
from ..logging_config import get_logger
from ..types import Event, ParseError, ParseResult, RawRecord, TokenUsage
from ..utils import parse_timestamp, safe_get_nested

logger = get_logger(__name__, namespace='parser')


TOKEN_COUNT_FIELDS = ('input_tokens', 'output_tokens')


def _token_count(name: str, value) -> int:
    """Validate a usage count; integral floats such as 5.0 are accepted."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid {name}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValueError(f"Invalid {name}: {value!r}")


def _parse_usage(usage) -> TokenUsage | None:
    if not isinstance(usage, dict):
        return None
    parsed = dict(usage)
    for name in TOKEN_COUNT_FIELDS:
        if parsed.get(name) is not None:
            parsed[name] = _token_count(name, parsed[name])
    return parsed


def parse_record(record: RawRecord) -> Event | None:
    """Convert a decoded record into an Event.

    Returns None for record types that take no part in turns.

    Raises:
        ValueError: If a user/assistant record has an unusable timestamp,
            a non-integer token count or a non-string model
    """
    record_type = record.get('type')
    if record_type not in TRACKED_EVENT_TYPES:
        return None

    message = record.get('message')
    if not isinstance(message, dict):
        message = {}

    model = message.get('model') or None
    if model is not None and not isinstance(model, str):
        raise ValueError(f"Invalid model: {model!r}")

    return Event(
        type=record_type,
        timestamp=parse_timestamp(record.get('timestamp')),
        usage=_parse_usage(safe_get_nested(record, 'message', 'usage')),
        role=message.get('role'),
        session_id=record.get('sessionId'),
        uuid=record.get('uuid'),
        model=model,
    )


def parse_jsonl(content: str, filename: str = '(unknown)') -> ParseResult:
    """Parse JSONL file content into user/assistant events.

    Args:
        content: Raw JSONL file content
        filename: Source label used in diagnostics

    Returns:
        ParseResult with the retained events in file order and one
        ParseError per line that failed to decode
    """
    result = ParseResult()
    stripped = content.strip()
    if not stripped:
        return result

    for line_number, line in enumerate(stripped.split('\n'), start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
            if not isinstance(record, dict):
                raise ValueError(f"Expected a JSON object, got {type(record).__name__}")
            event = parse_record(record)
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            result.errors.append(ParseError(
                line_number=line_number,
                line=line[:PARSE_ERROR_EXCERPT_LENGTH],
                error=str(e),
            ))
            continue

        if event is not None:
            result.events.append(event)

    if result.errors:
        logger.warning(
            "%s: Failed to parse %d line(s): %s",
            filename,
            len(result.errors),
            [e.to_dict() for e in result.errors],
        )

    return result
