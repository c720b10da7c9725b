"""
System prompt construction.
The digest of recent workouts is the only state carried between turns.
"""
from typing import Sequence

from spotme.constants import PERSONA, FORMAT_INSTRUCTIONS, PROMPT_WORKOUT_LIMIT


def _format_date(value) -> str:
    # Short style, e.g. 10/18/26
    return value.strftime("%m/%d/%y") if value else ""


def build_workout_digest(workouts: Sequence, limit: int = PROMPT_WORKOUT_LIMIT) -> str:
    """
    One line per workout: date, day type and exercise names.
    Expects workouts newest first, as the repository returns them.
    """
    lines = []
    for workout in list(workouts)[:limit]:
        line = f"- {_format_date(workout.date)}: {workout.day_type or ''}".rstrip()
        names = ", ".join(workout.exercise_names)
        if names:
            line += f" ({names})"
        lines.append(line)

    if not lines:
        return ""
    return "Recent workouts:\n" + "\n".join(lines)


def build_system_prompt(workouts: Sequence) -> str:
    parts = [PERSONA]

    digest = build_workout_digest(workouts)
    if digest:
        parts.append(digest)

    parts.append(FORMAT_INSTRUCTIONS)
    return "\n\n".join(parts)
