"""
Chat State
==========

In-memory transcript types:
- ChatMessage: immutable single message
- ChatSession: one conversation, append-only, day type set at most once
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from models import DayType
from spotme.constants import DEFAULT_SESSION_TITLE


@dataclass(frozen=True)
class ChatMessage:
    """Single chat message."""
    content: str
    is_from_user: bool
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ChatSession:
    """One conversation with its messages in conversation order."""
    title: str = DEFAULT_SESSION_TITLE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    date: datetime = field(default_factory=datetime.now)
    day_type: Optional[str] = None
    messages: List[ChatMessage] = field(default_factory=list)

    def add_message(self, message: ChatMessage):
        self.messages.append(message)

    def assign_day_type(self, day_type: Optional[str]) -> bool:
        """First non-empty value wins; returns True if it was set now."""
        if self.day_type or not day_type:
            return False
        self.day_type = day_type
        return True

    @property
    def display_title(self) -> str:
        if self.day_type:
            parsed = DayType.parse(self.day_type)
            emoji = parsed.emoji if parsed else "💪"
            return f"{emoji} {self.day_type}"
        return self.date.strftime("%b %d, %Y")
