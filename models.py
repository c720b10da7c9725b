from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey, Index
from sqlalchemy.orm import relationship, validates
from database import Base
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid


def _new_id() -> str:
    return str(uuid.uuid4())


class DayType(str, Enum):
    PUSH = "Push"
    PULL = "Pull"
    LEGS = "Legs"
    SHOULDERS = "Shoulders"
    CHEST = "Chest"
    BACK = "Back"
    ARMS = "Arms"
    CARDIO = "Cardio"
    REST = "Rest"

    @property
    def emoji(self) -> str:
        return _DAY_TYPE_EMOJI[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["DayType"]:
        """Case-insensitive lookup; unknown or empty values map to None."""
        if not value:
            return None
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


_DAY_TYPE_EMOJI = {
    DayType.PUSH: "💪",
    DayType.PULL: "🏋️",
    DayType.LEGS: "🦵",
    DayType.SHOULDERS: "🤸",
    DayType.CHEST: "💯",
    DayType.BACK: "🔥",
    DayType.ARMS: "💪",
    DayType.CARDIO: "🏃",
    DayType.REST: "😴",
}


class Workout(Base):
    __tablename__ = "workouts"

    id = Column(String(36), primary_key=True, default=_new_id)
    date = Column(DateTime, nullable=False, default=datetime.now, index=True)
    day_type = Column(String(20), nullable=True)  # DayType value or empty
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.now)

    # Exclusive ownership: exercises go away with their workout
    exercises = relationship(
        "Exercise",
        back_populates="workout",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Exercise.position",
    )

    @property
    def exercise_names(self):
        return [exercise.name for exercise in self.exercises if exercise.name]

    def __repr__(self):
        return f"<Workout {self.id} {self.date:%Y-%m-%d} {self.day_type or '-'}>"


class Exercise(Base):
    __tablename__ = "exercises"
    __table_args__ = (
        Index("ix_exercises_name_weight", "name", "weight"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    workout_id = Column(String(36), ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)  # Dedup key for history and PRs
    sets = Column(Integer, nullable=False, default=0)
    reps = Column(Integer, nullable=False, default=0)
    weight = Column(Float, nullable=False, default=0.0)  # pounds
    total_weight = Column(Float, nullable=False, default=0.0)  # sets * reps * weight
    is_pr = Column(Boolean, nullable=False, default=False)

    position = Column(Integer, default=0)  # Order inside the workout
    created_at = Column(DateTime, default=datetime.now)

    workout = relationship("Workout", back_populates="exercises")

    @validates("sets", "reps", "weight")
    def _validate_amount(self, key, value):
        """Reject negatives and keep total_weight in sync on every assignment."""
        if value is None:
            value = 0
        if value < 0:
            raise ValueError(f"{key} must be >= 0, got {value}")
        if key in ("sets", "reps"):
            value = int(value)
        else:
            value = float(value)

        amounts = {
            "sets": self.sets or 0,
            "reps": self.reps or 0,
            "weight": self.weight or 0.0,
        }
        amounts[key] = value
        self.total_weight = float(amounts["sets"]) * float(amounts["reps"]) * float(amounts["weight"])
        return value

    def __repr__(self):
        return f"<Exercise {self.name} {self.sets}x{self.reps}@{self.weight} pr={self.is_pr}>"
