"""
Conversation Coordinator Tests
==============================

Full turns against a real in-memory store with a fake AI client.
"""

import asyncio
import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock

from models import Workout, Exercise
from spotme.constants import ErrorMessages
from spotme.coordinator import ChatCoordinator
from spotme.errors import APIError, MissingAPIKey, PersistenceError
from spotme.llm_client import MockAIClient, build_response
from spotme.repository import WorkoutRepository


BENCH_REPLY = """Bench day! 3x8 at 135, love to see it 💪
WORKOUT_DATA: {
  "exercises": [{"name": "Bench Press", "sets": 3, "reps": 8, "weight": 135.0, "isPR": false}],
  "dayType": "Push",
  "notes": null
}"""

LEGS_REPLY = 'Legs too? Beast 🦵 WORKOUT_DATA: {"exercises": [{"name": "Squat", "sets": 5, "reps": 5, "weight": 225}], "dayType": "Legs"}'

REST_REPLY = 'Rest is part of the plan 😴 WORKOUT_DATA: {"exercises": [], "dayType": "Rest", "notes": "Sore"}'

HUGE_SETS_REPLY = 'Big numbers! WORKOUT_DATA: {"exercises": [{"name": "Bench Press", "sets": 99999999999999999999999, "reps": 8, "weight": 135}], "dayType": "Push"}'

BLOCK_ONLY_REPLY = 'WORKOUT_DATA: {"exercises": [{"name": "Squat", "sets": 5, "reps": 5, "weight": 225}], "dayType": "Legs"}'


class GatedAIClient:
    """Holds every reply until release() so tests can act mid-turn."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = 0
        self._gate = None

    def release(self):
        self._gate.set()

    async def send_message(self, user_text, recent_workouts):
        self.calls += 1
        if self._gate is None:
            self._gate = asyncio.Event()
        await self._gate.wait()
        return build_response(self.reply)


@pytest.fixture
def repo(db):
    return WorkoutRepository(db)


def _coordinator(client, repository):
    coordinator = ChatCoordinator(client, repository)
    coordinator.load_sessions()
    return coordinator


class TestSuccessfulTurn:

    def test_bench_press_logged(self, repo, db):
        client = MockAIClient(reply=BENCH_REPLY)
        coordinator = _coordinator(client, repo)
        session = coordinator.selected_session

        reply = asyncio.run(coordinator.send_message("Bench press, 3 sets of 8 at 135 lbs"))

        assert len(session.messages) == 2
        assert session.messages[0].is_from_user is True
        assert session.messages[0].content == "Bench press, 3 sets of 8 at 135 lbs"
        assert session.messages[1] is reply
        assert reply.is_from_user is False

        assert db.query(Workout).count() == 1
        exercise = db.query(Exercise).one()
        assert exercise.name == "Bench Press"
        assert exercise.total_weight == 3240.0
        assert exercise.is_pr is False

    def test_reply_shown_without_structured_block(self, repo):
        coordinator = _coordinator(MockAIClient(reply=BENCH_REPLY), repo)

        reply = asyncio.run(coordinator.send_message("bench 3x8 135"))

        assert reply.content == "Bench day! 3x8 at 135, love to see it 💪"
        assert "WORKOUT_DATA" not in reply.content

    def test_block_only_reply_shows_confirmation(self, repo, db):
        coordinator = _coordinator(MockAIClient(reply=BLOCK_ONLY_REPLY), repo)

        reply = asyncio.run(coordinator.send_message("squats 5x5 225"))

        assert reply.content == ErrorMessages.WORKOUT_LOGGED
        assert db.query(Exercise).one().name == "Squat"

    def test_recent_workouts_sent_as_context(self, repo):
        repo.create_workout(date=datetime.now() - timedelta(days=2), day_type="Pull")
        repo.create_workout(date=datetime.now() - timedelta(days=20), day_type="Legs")
        client = MockAIClient()
        coordinator = _coordinator(client, repo)

        asyncio.run(coordinator.send_message("what should I train today?"))

        text, workouts = client.calls[0]
        assert text == "what should I train today?"
        assert [w.day_type for w in workouts] == ["Pull"]

    def test_day_type_first_extraction_wins(self, repo):
        client = MockAIClient(reply=BENCH_REPLY)
        coordinator = _coordinator(client, repo)

        asyncio.run(coordinator.send_message("bench 3x8 135"))
        client.reply = LEGS_REPLY
        asyncio.run(coordinator.send_message("also squats 5x5 225"))

        assert coordinator.selected_session.day_type == "Push"
        assert coordinator.current_session_title == "💪 Push"
        assert len(repo.fetch_all_workouts()) == 2

    def test_no_exercises_sets_day_type_without_saving(self, repo, db):
        coordinator = _coordinator(MockAIClient(reply=REST_REPLY), repo)

        asyncio.run(coordinator.send_message("taking a rest day"))

        assert db.query(Workout).count() == 0
        assert coordinator.selected_session.day_type == "Rest"

    def test_plain_reply_saves_nothing(self, repo, db):
        coordinator = _coordinator(MockAIClient(reply="Hydrate and sleep well! 💧"), repo)

        asyncio.run(coordinator.send_message("any tips?"))

        assert db.query(Workout).count() == 0
        assert coordinator.selected_session.day_type is None
        assert coordinator.current_messages[-1].content == "Hydrate and sleep well! 💧"


class TestFailedTurn:

    @pytest.mark.parametrize("error", [APIError("HTTP 500", status_code=500), MissingAPIKey(), RuntimeError("bug")])
    def test_error_becomes_fallback_message(self, repo, db, error):
        coordinator = _coordinator(MockAIClient(error=error), repo)

        reply = asyncio.run(coordinator.send_message("bench 3x8 135"))

        assert reply.content == ErrorMessages.TURN_FAILED
        assert [m.is_from_user for m in coordinator.current_messages] == [True, False]
        assert coordinator.last_error is error
        assert coordinator.is_typing is False
        assert db.query(Workout).count() == 0

    def test_save_failure_warns_user(self):
        repository = Mock(spec=WorkoutRepository)
        repository.fetch_recent_workouts.return_value = []
        repository.record_workout.side_effect = PersistenceError("disk full")
        coordinator = _coordinator(MockAIClient(reply=BENCH_REPLY), repository)

        asyncio.run(coordinator.send_message("bench 3x8 135"))

        contents = [m.content for m in coordinator.current_messages]
        assert contents[1] == "Bench day! 3x8 at 135, love to see it 💪"
        assert contents[2] == ErrorMessages.SAVE_FAILED
        assert coordinator.selected_session.day_type is None
        assert isinstance(coordinator.last_error, PersistenceError)

    def test_unexpected_save_error_becomes_fallback(self):
        repository = Mock(spec=WorkoutRepository)
        repository.fetch_recent_workouts.return_value = []
        repository.record_workout.side_effect = OverflowError("int too large")
        coordinator = _coordinator(MockAIClient(reply=BENCH_REPLY), repository)

        reply = asyncio.run(coordinator.send_message("bench 3x8 135"))

        assert reply.content == ErrorMessages.TURN_FAILED
        assert [m.is_from_user for m in coordinator.current_messages] == [True, False]
        assert isinstance(coordinator.last_error, OverflowError)
        assert coordinator.is_typing is False

    def test_oversized_counts_do_not_break_later_turns(self, repo, db):
        client = MockAIClient(reply=HUGE_SETS_REPLY)
        coordinator = _coordinator(client, repo)

        first = asyncio.run(coordinator.send_message("bench"))
        client.reply = BENCH_REPLY
        second = asyncio.run(coordinator.send_message("bench 3x8 135"))

        assert first.content == "Big numbers!"
        assert second.content == "Bench day! 3x8 at 135, love to see it 💪"
        assert len(coordinator.current_messages) == 4
        assert db.query(Workout).count() == 1


class TestInputHandling:

    def test_blank_message_ignored(self, repo):
        client = MockAIClient()
        coordinator = _coordinator(client, repo)

        assert asyncio.run(coordinator.send_message("   \n ")) is None
        assert coordinator.current_messages == []
        assert client.calls == []

    def test_overlapping_send_rejected(self, repo):
        client = GatedAIClient("Logged! 💪")
        coordinator = _coordinator(client, repo)

        async def scenario():
            first = asyncio.create_task(coordinator.send_message("bench 3x8 135"))
            await asyncio.sleep(0)
            assert coordinator.is_typing is True

            second = await coordinator.send_message("and dips")
            client.release()
            return second, await first

        second, first = asyncio.run(scenario())

        assert second is None
        assert first.content == "Logged! 💪"
        assert client.calls == 1
        assert [m.content for m in coordinator.current_messages] == ["bench 3x8 135", "Logged! 💪"]
        assert coordinator.is_typing is False


class TestSessionRouting:

    def test_late_reply_lands_in_originating_session(self, repo):
        client = GatedAIClient("Logged! 💪")
        coordinator = _coordinator(client, repo)
        origin = coordinator.selected_session

        async def scenario():
            turn = asyncio.create_task(coordinator.send_message("bench 3x8 135"))
            await asyncio.sleep(0)
            fresh = coordinator.start_new_session()
            # Typing shows while any session awaits its reply
            assert coordinator.is_typing is True
            assert coordinator.is_awaiting_reply(fresh.id) is False
            client.release()
            await turn
            return fresh

        fresh = asyncio.run(scenario())

        assert coordinator.selected_session is fresh
        assert fresh.messages == []
        assert [m.content for m in origin.messages] == ["bench 3x8 135", "Logged! 💪"]

    def test_reply_dropped_when_session_deleted(self, repo, db):
        client = GatedAIClient(BENCH_REPLY)
        coordinator = _coordinator(client, repo)
        origin_id = coordinator.selected_session_id

        async def scenario():
            turn = asyncio.create_task(coordinator.send_message("bench 3x8 135"))
            await asyncio.sleep(0)
            coordinator.delete_session(origin_id)
            client.release()
            return await turn

        assert asyncio.run(scenario()) is None
        assert all(s.messages == [] for s in coordinator.sessions)
        # The workout itself is still recorded
        assert db.query(Workout).count() == 1


class TestSessionManagement:

    def test_load_creates_first_session(self, repo):
        coordinator = ChatCoordinator(MockAIClient(), repo)
        coordinator.load_sessions()

        assert len(coordinator.sessions) == 1
        assert coordinator.selected_session.title == "New Workout"

    def test_title_is_date_until_day_type_known(self, repo):
        coordinator = _coordinator(MockAIClient(), repo)
        session = coordinator.selected_session
        session.date = datetime(2025, 3, 9)

        assert coordinator.current_session_title == "Mar 09, 2025"
        session.assign_day_type("Legs")
        assert coordinator.current_session_title == "🦵 Legs"

    def test_deleting_only_session_creates_new_one(self, repo):
        coordinator = _coordinator(MockAIClient(), repo)
        only = coordinator.selected_session

        coordinator.delete_session(only.id)

        assert len(coordinator.sessions) == 1
        fresh = coordinator.selected_session
        assert fresh.id != only.id
        assert fresh.title == "New Workout"
        assert fresh.messages == []

    def test_delete_selected_selects_next(self, repo):
        coordinator = _coordinator(MockAIClient(), repo)
        older = coordinator.selected_session
        newer = coordinator.start_new_session()

        coordinator.delete_session(newer.id)

        assert coordinator.selected_session is older

    def test_select_unknown_session(self, repo):
        coordinator = _coordinator(MockAIClient(), repo)
        with pytest.raises(KeyError):
            coordinator.select_session("missing")

    def test_observers_notified_until_unsubscribed(self, repo):
        coordinator = _coordinator(MockAIClient(), repo)
        typing_states = []
        unsubscribe = coordinator.subscribe(lambda c: typing_states.append(c.is_typing))

        asyncio.run(coordinator.send_message("hello"))
        assert typing_states == [True, False]

        unsubscribe()
        coordinator.start_new_session()
        assert len(typing_states) == 2
