"""
SpotMe Repository Layer
=======================

Single source of truth for Workout/Exercise records.

Every mutating call ends in one save that is skipped when nothing is
pending. A failed save is rolled back and logged; only record_workout()
propagates it (PersistenceError) so the chat can tell the user.
Writes are serialized on one lock; reads are not.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Workout, Exercise
from spotme.errors import PersistenceError
from spotme.schemas import WorkoutData

logger = logging.getLogger(__name__)


class WorkoutRepository:
    """
    CRUD over workouts and exercises, plus PR evaluation against history.
    """

    def __init__(self, db: Session):
        self.db = db
        self._write_lock = threading.RLock()

    # ==========================================================================
    # COMMIT DISCIPLINE
    # ==========================================================================

    def _has_changes(self) -> bool:
        return bool(self.db.new or self.db.dirty or self.db.deleted)

    def _commit(self):
        """Commit pending changes; raises PersistenceError after rolling back."""
        if not self._has_changes():
            return
        try:
            self.db.commit()
        except Exception as e:
            # Driver errors (e.g. OverflowError) are not wrapped by SQLAlchemy
            self.db.rollback()
            raise PersistenceError(str(e)) from e

    def _save(self) -> bool:
        """Commit, logging and swallowing failures. Returns False on failure."""
        try:
            self._commit()
            return True
        except PersistenceError as e:
            logger.error(f"Failed to save workout data: {e}")
            return False

    # ==========================================================================
    # WORKOUT CRUD
    # ==========================================================================

    def _new_workout(self, date: Optional[datetime], day_type: Optional[str], notes: Optional[str]) -> Workout:
        workout = Workout(
            date=date or datetime.now(),
            day_type=day_type or "",
            notes=notes or "",
        )
        self.db.add(workout)
        return workout

    def create_workout(
        self,
        date: Optional[datetime] = None,
        day_type: str = "",
        notes: str = ""
    ) -> Workout:
        """Insert a workout and commit."""
        with self._write_lock:
            workout = self._new_workout(date, day_type, notes)
            self._save()
            return workout

    def fetch_recent_workouts(self, days: int = 7) -> List[Workout]:
        """Workouts dated within the last `days` days, newest first."""
        start_date = datetime.now() - timedelta(days=days)
        return self.db.query(Workout).filter(
            Workout.date >= start_date
        ).order_by(Workout.date.desc()).all()

    def fetch_all_workouts(self) -> List[Workout]:
        return self.db.query(Workout).order_by(Workout.date.desc()).all()

    # ==========================================================================
    # EXERCISE CRUD
    # ==========================================================================

    def _previous_best(self, name: str) -> Optional[float]:
        """Heaviest weight previously recorded for `name` (None without history)."""
        return self.db.query(func.max(Exercise.weight)).filter(
            Exercise.name == name
        ).scalar()

    def _new_exercise(self, workout: Workout, name: str, sets: int, reps: int, weight: float) -> Exercise:
        # Query before adding so the new row is not part of its own history
        previous_best = self._previous_best(name)

        exercise = Exercise(
            name=name,
            sets=sets,
            reps=reps,
            weight=weight,
            position=len(workout.exercises),
            created_at=datetime.now(),
        )
        exercise.is_pr = previous_best is not None and previous_best < exercise.weight
        workout.exercises.append(exercise)
        # Pending rows are autoflushed before the next history query
        self.db.add(exercise)

        if exercise.is_pr:
            logger.info(f"New PR for {name}: {exercise.weight} (previous best {previous_best})")
        return exercise

    def add_exercise(
        self,
        workout: Workout,
        name: str,
        sets: int,
        reps: int,
        weight: float
    ) -> Exercise:
        """Create an exercise on `workout`, flag a PR if it beats history, commit."""
        with self._write_lock:
            exercise = self._new_exercise(workout, name, sets, reps, weight)
            self._save()
            return exercise

    def fetch_personal_records(self, exercise_name: str) -> List[Exercise]:
        """PR entries for one exercise, heaviest first."""
        return self.db.query(Exercise).filter(
            Exercise.name == exercise_name,
            Exercise.is_pr == True  # noqa: E712
        ).order_by(Exercise.weight.desc()).all()

    def fetch_last_exercise(self, exercise_name: str) -> Optional[Exercise]:
        """
        Most recent performance of an exercise: by owning workout date, then
        by creation time and position inside the workout.
        """
        return self.db.query(Exercise).join(Workout).filter(
            Exercise.name == exercise_name
        ).order_by(
            Workout.date.desc(),
            Exercise.created_at.desc(),
            Exercise.position.desc()
        ).first()

    def delete(self, obj) -> bool:
        """Delete a workout (its exercises go with it) or a single exercise."""
        with self._write_lock:
            self.db.delete(obj)
            return self._save()

    # ==========================================================================
    # TRANSACTIONAL TURN COMMIT
    # ==========================================================================

    def record_workout(self, workout_data: WorkoutData, date: Optional[datetime] = None) -> Workout:
        """
        Persist an extracted workout and all its exercises (array order) in one
        transaction. Nothing is kept if any part fails.
        """
        with self._write_lock:
            try:
                workout = self._new_workout(date, workout_data.day_type, workout_data.notes)
                for item in workout_data.exercises:
                    self._new_exercise(workout, item.name, item.sets, item.reps, item.weight)
                self._commit()
            except PersistenceError as e:
                logger.error(f"Workout not saved, rolled back: {e}")
                raise
            except Exception as e:
                self.db.rollback()
                logger.error(f"Workout not saved, rolled back: {e}")
                raise PersistenceError(str(e)) from e

        logger.info(
            f"Saved workout {workout.id} ({workout.day_type or 'no day type'}) "
            f"with {len(workout.exercises)} exercise(s)"
        )
        return workout
