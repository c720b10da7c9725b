"""
Pydantic Schemas for SpotMe
Structured workout payload, AI reply and chat-completion wire format
"""
import math
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List

from models import DayType


_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

# Largest set/rep count the record store accepts
MAX_COUNT = 2**31 - 1


def _first_number(value):
    """Pull the first number out of loose model output ("135 lbs" -> 135.0)."""
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if match:
            value = float(match.group())
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"not a finite number: {value!r}")
        return value
    raise ValueError(f"not a number: {value!r}")


# ============ Structured Workout Payload ============

class ExerciseData(BaseModel):
    """One exercise as extracted by the model."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    sets: int = Field(..., ge=0, le=MAX_COUNT)
    reps: int = Field(..., ge=0, le=MAX_COUNT)
    weight: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    is_pr: bool = Field(default=False, alias="isPR")

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value):
        if not isinstance(value, str):
            raise ValueError("name must be a string")
        return value.strip()

    @field_validator("sets", "reps", mode="before")
    @classmethod
    def _coerce_count(cls, value):
        return int(_first_number(value))

    @field_validator("weight", mode="before")
    @classmethod
    def _coerce_weight(cls, value):
        if value is None:
            return 0.0
        return float(_first_number(value))


class WorkoutData(BaseModel):
    """The WORKOUT_DATA block embedded in an assistant reply."""
    model_config = ConfigDict(populate_by_name=True)

    exercises: List[ExerciseData] = []
    day_type: Optional[str] = Field(default=None, alias="dayType")
    notes: Optional[str] = None

    @field_validator("day_type", mode="before")
    @classmethod
    def _normalize_day_type(cls, value):
        # Unknown labels ("Upper body", "Push/Pull") are treated as unset
        if not isinstance(value, str):
            return None
        day_type = DayType.parse(value)
        return day_type.value if day_type else None

    @field_validator("notes", mode="before")
    @classmethod
    def _clean_notes(cls, value):
        if not isinstance(value, str):
            return None
        return value.strip() or None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class AIResponse(BaseModel):
    """Reply from the AI client for one turn."""
    message: str
    workout_data: Optional[WorkoutData] = None
    suggestions: List[str] = []


# ============ Chat-Completion Wire Format ============

class ChatCompletionMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None


class ChatCompletionRequest(BaseModel):
    model: str
    messages: List[ChatCompletionMessage]
    max_tokens: int
    temperature: float


class ChatCompletionChoice(BaseModel):
    message: ChatCompletionMessage


class ChatCompletion(BaseModel):
    """Only the fields we read from choices[0].message.content."""
    choices: List[ChatCompletionChoice] = Field(..., min_length=1)

    @property
    def content(self) -> str:
        return self.choices[0].message.content or ""
