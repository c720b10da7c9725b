"""
SpotMe - Chat-based Workout Logger
==================================

Workouts are logged in plain language; an AI model extracts the
exercises, which are stored with personal-record flags.

Key pieces:
1. WorkoutRepository - Workout/Exercise records, PR evaluation, commits
2. AI clients - prompt from recent history, chat-completion call, retries
3. Parser - WORKOUT_DATA block -> WorkoutData, never raises
4. ChatCoordinator - one turn at a time per session, transcript + observers
"""

from spotme.repository import WorkoutRepository
from spotme.llm_client import AIClient, OpenAIChatClient, GeminiChatClient, MockAIClient, create_ai_client
from spotme.parser import extract_workout_data
from spotme.coordinator import ChatCoordinator
from spotme.state import ChatMessage, ChatSession

__all__ = [
    'WorkoutRepository',
    'AIClient',
    'OpenAIChatClient',
    'GeminiChatClient',
    'MockAIClient',
    'create_ai_client',
    'extract_workout_data',
    'ChatCoordinator',
    'ChatMessage',
    'ChatSession',
]
