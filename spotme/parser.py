"""
Workout Data Parser
===================

Finds the WORKOUT_DATA block in an assistant reply and decodes it.
The model's output drifts, so decoding is permissive and fails closed:
anything unreadable means "no structured data", never an exception.
"""

import json
import logging
import re
from typing import Optional, Tuple, Dict, Any

from pydantic import ValidationError

from spotme.constants import WORKOUT_DATA_MARKER
from spotme.errors import ParseError
from spotme.schemas import ExerciseData, WorkoutData

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()
_OPEN_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*$")
_CLOSE_FENCE_RE = re.compile(r"^\s*```")


def _locate_block(text: str) -> Optional[Tuple[int, int, Dict[str, Any]]]:
    """
    Returns (marker_start, json_end, payload) or None when there is no marker.
    Raises ParseError when the marker is present but the JSON is unusable.
    """
    marker_at = text.find(WORKOUT_DATA_MARKER)
    if marker_at == -1:
        return None

    brace_at = text.find("{", marker_at + len(WORKOUT_DATA_MARKER))
    if brace_at == -1:
        raise ParseError("marker without a JSON object")

    try:
        payload, end = _decoder.raw_decode(text, brace_at)
    except json.JSONDecodeError as e:
        raise ParseError(f"malformed JSON after marker: {e}") from e

    if not isinstance(payload, dict):
        raise ParseError("payload is not an object")
    return marker_at, end, payload


def parse_workout_payload(payload: Dict[str, Any]) -> WorkoutData:
    """Decode a payload dict, dropping exercises that do not validate."""
    raw_exercises = payload.get("exercises") or []
    if not isinstance(raw_exercises, list):
        raise ParseError("exercises is not a list")

    exercises = []
    for index, raw in enumerate(raw_exercises):
        if not isinstance(raw, dict):
            logger.debug(f"Skipping exercise #{index}: not an object")
            continue
        try:
            exercises.append(ExerciseData.model_validate(raw))
        except ValidationError as e:
            logger.debug(f"Skipping exercise #{index}: {e.error_count()} invalid field(s)")

    return WorkoutData(
        exercises=exercises,
        dayType=payload.get("dayType"),
        notes=payload.get("notes"),
    )


def extract_workout_data(text: Optional[str]) -> Optional[WorkoutData]:
    """Return the structured workout in `text`, or None."""
    if not text:
        return None
    try:
        located = _locate_block(text)
        if located is None:
            return None
        return parse_workout_payload(located[2])
    except (ParseError, ValidationError) as e:
        logger.debug(f"No workout data extracted: {e}")
        return None


def strip_workout_data(text: str) -> str:
    """
    The reply as the user should see it: the WORKOUT_DATA block (and any code
    fence around it) removed.
    """
    if not text:
        return ""
    try:
        located = _locate_block(text)
    except ParseError:
        return _OPEN_FENCE_RE.sub("", text[:text.find(WORKOUT_DATA_MARKER)]).strip()

    if located is None:
        return text.strip()

    marker_at, end, _ = located
    before = _OPEN_FENCE_RE.sub("", text[:marker_at].rstrip()).rstrip()
    after = _CLOSE_FENCE_RE.sub("", text[end:], count=1).strip()
    return "\n\n".join(part for part in (before, after) if part)


def serialize_workout_data(data: WorkoutData) -> str:
    return f"{WORKOUT_DATA_MARKER} {json.dumps(data.to_payload(), indent=2, ensure_ascii=False)}"
