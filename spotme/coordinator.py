"""
SpotMe Conversation Coordinator
===============================

Runs one chat turn end to end:

    user text -> recent workouts -> AI client -> WorkoutData
              -> repository (workout + exercises + PR flags, one transaction)
              -> assistant message appended to the originating session

Per-turn states: Idle -> AwaitingReply -> (Success | Failed) -> Idle.

The coordinator owns all session state and is driven from a single event
loop; the AI call is its only suspension point. Observers registered with
subscribe() are called after every state change.
"""

import logging
from typing import Callable, List, Optional, Set

from config import Settings
from spotme.constants import DEFAULT_SESSION_TITLE, MAX_CHAT_SESSIONS, ErrorMessages
from spotme.errors import PersistenceError, SpotMeError
from spotme.llm_client import AIClient
from spotme.parser import strip_workout_data
from spotme.repository import WorkoutRepository
from spotme.schemas import AIResponse
from spotme.state import ChatMessage, ChatSession

logger = logging.getLogger(__name__)

Observer = Callable[["ChatCoordinator"], None]


class ChatCoordinator:
    """
    Session list + turn orchestration.
    Dependencies are injected so tests can pass fakes.
    """

    def __init__(
        self,
        ai_client: AIClient,
        repository: WorkoutRepository,
        context_days: int = Settings.CONTEXT_WORKOUT_DAYS,
    ):
        self.ai_client = ai_client
        self.repository = repository
        self.context_days = context_days

        self.sessions: List[ChatSession] = []
        self.selected_session_id: Optional[str] = None
        self.last_error: Optional[Exception] = None

        self._pending: Set[str] = set()
        self._observers: List[Observer] = []

    # ==========================================================================
    # OBSERVATION
    # ==========================================================================

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self):
        for observer in list(self._observers):
            try:
                observer(self)
            except Exception:
                logger.exception("Chat observer failed")

    # ==========================================================================
    # DERIVED STATE
    # ==========================================================================

    def _find(self, session_id: Optional[str]) -> Optional[ChatSession]:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    @property
    def selected_session(self) -> Optional[ChatSession]:
        return self._find(self.selected_session_id)

    @property
    def current_messages(self) -> List[ChatMessage]:
        session = self.selected_session
        return list(session.messages) if session else []

    @property
    def current_session_title(self) -> str:
        session = self.selected_session
        return session.display_title if session else DEFAULT_SESSION_TITLE

    @property
    def is_typing(self) -> bool:
        """Typing indicator: true while any session awaits a reply."""
        return bool(self._pending)

    def is_awaiting_reply(self, session_id: str) -> bool:
        return session_id in self._pending

    # ==========================================================================
    # SESSION MANAGEMENT
    # ==========================================================================

    def load_sessions(self):
        # Transcripts are not persisted across restarts yet
        if not self.sessions:
            self.start_new_session()

    def start_new_session(self) -> ChatSession:
        session = ChatSession(title=DEFAULT_SESSION_TITLE)
        self.sessions.insert(0, session)
        self.selected_session_id = session.id

        # Drop the oldest idle sessions beyond the cap
        while len(self.sessions) > MAX_CHAT_SESSIONS:
            idle = [s for s in self.sessions[1:] if s.id not in self._pending]
            if not idle:
                break
            self.sessions.remove(idle[-1])

        self._notify()
        return session

    def select_session(self, session_id: str) -> ChatSession:
        session = self._find(session_id)
        if session is None:
            raise KeyError(f"Unknown chat session: {session_id}")
        self.selected_session_id = session.id
        self._notify()
        return session

    def delete_session(self, session_id: str):
        self.sessions = [s for s in self.sessions if s.id != session_id]

        if self.selected_session_id == session_id:
            self.selected_session_id = self.sessions[0].id if self.sessions else None

        if not self.sessions:
            # start_new_session notifies
            self.start_new_session()
            return
        self._notify()

    # ==========================================================================
    # TURN HANDLING
    # ==========================================================================

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """
        Run one turn for the selected session.

        Returns the assistant message appended for this turn, or None when the
        text is blank, the session already has a reply pending, or the
        session was deleted before the reply arrived.
        """
        message_text = (text or "").strip()
        if not message_text:
            return None

        session = self.selected_session or self.start_new_session()
        if session.id in self._pending:
            logger.warning(f"Session {session.id} is still awaiting a reply; message rejected")
            return None

        # Idle -> AwaitingReply
        session.add_message(ChatMessage(content=message_text, is_from_user=True))
        self._pending.add(session.id)
        self._notify()

        # Replies go to the session that asked, whatever is selected by then
        session_id = session.id
        response = None
        error = None
        try:
            recent_workouts = self.repository.fetch_recent_workouts(days=self.context_days)
            response = await self.ai_client.send_message(message_text, recent_workouts)
        except Exception as e:
            error = e
        finally:
            # AwaitingReply ends here; the typing indicator clears before the reply lands
            self._pending.discard(session_id)

        if error is not None:
            return self._fail_turn(session_id, error)
        return self._complete_turn(session_id, response)

    def _complete_turn(self, session_id: str, response: AIResponse) -> Optional[ChatMessage]:
        workout_data = response.workout_data
        saved = True
        if workout_data and workout_data.exercises:
            try:
                self.repository.record_workout(workout_data)
            except PersistenceError as e:
                saved = False
                self.last_error = e
            except Exception as e:
                return self._fail_turn(session_id, e)

        session = self._find(session_id)
        if session is None:
            logger.info(f"Session {session_id} was deleted before its reply arrived")
            self._notify()
            return None

        reply = ChatMessage(
            content=strip_workout_data(response.message) or ErrorMessages.WORKOUT_LOGGED,
            is_from_user=False
        )
        session.add_message(reply)

        if not saved:
            session.add_message(ChatMessage(content=ErrorMessages.SAVE_FAILED, is_from_user=False))
        elif workout_data:
            session.assign_day_type(workout_data.day_type)

        self._notify()
        return reply

    def _fail_turn(self, session_id: str, error: Exception) -> Optional[ChatMessage]:
        self.last_error = error
        if isinstance(error, SpotMeError):
            logger.error(f"Chat turn failed: {error}")
        else:
            logger.exception(f"Chat turn failed unexpectedly: {error}")

        session = self._find(session_id)
        if session is None:
            self._notify()
            return None

        fallback = ChatMessage(content=ErrorMessages.TURN_FAILED, is_from_user=False)
        session.add_message(fallback)
        self._notify()
        return fallback
