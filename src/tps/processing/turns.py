"""Turn reconstruction and per-turn throughput.

A turn opens on a user message and collects every assistant message up to
the next user message or the end of the file.
"""

from typing import Iterable

from ..config import UNKNOWN_MODEL
from ..models import MetricPoint
from ..types import Event, Turn
from ..utils import OrderedSet


def calculate_turn_tps(turn: Turn, session_id: str) -> MetricPoint | None:
    """Compute throughput for one closed turn.

    Args:
        turn: Turn with a user timestamp and at least one assistant message
        session_id: Session the turn belongs to

    Returns:
        MetricPoint, or None when the turn spans no positive time
    """
    if turn.user_timestamp is None or not turn.assistant_messages:
        return None

    input_tokens = 0
    output_tokens = 0
    last_timestamp = turn.user_timestamp
    models: OrderedSet[str] = OrderedSet()

    for msg in turn.assistant_messages:
        if msg.usage:
            input_tokens += msg.usage.get('input_tokens') or 0
            output_tokens += msg.usage.get('output_tokens') or 0
        if msg.timestamp > last_timestamp:
            last_timestamp = msg.timestamp
        if msg.model:
            models.add(msg.model)

    duration_seconds = (last_timestamp - turn.user_timestamp).total_seconds()
    if duration_seconds <= 0:
        return None

    total_tokens = input_tokens + output_tokens

    return MetricPoint(
        session_id=session_id,
        timestamp=turn.user_timestamp,
        tps=total_tokens / duration_seconds,
        itps=input_tokens / duration_seconds,
        otps=output_tokens / duration_seconds,
        total_tokens=total_tokens,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        duration_seconds=duration_seconds,
        model=models.first(UNKNOWN_MODEL),
        models=models.to_list(),
    )


def calculate_tps(events: Iterable[Event], session_id: str) -> list[MetricPoint]:
    """Segment events into turns and compute throughput for each.

    Assistant messages seen before any user message cannot be attributed
    and are ignored. A user message that arrives while the open turn has no
    assistant messages replaces it.
    """
    points: list[MetricPoint] = []
    turn: Turn | None = None

    def close(current: Turn | None):
        if current is not None and current.assistant_messages:
            point = calculate_turn_tps(current, session_id)
            if point is not None:
                points.append(point)

    for event in events:
        if event.type == 'user':
            close(turn)
            turn = Turn(user_timestamp=event.timestamp)
        elif event.type == 'assistant' and turn is not None:
            turn.assistant_messages.append(event)

    close(turn)
    return points
