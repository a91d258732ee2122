"""
Chat service managing in-memory assistant conversations.
Sessions live in an injected store and are swept once idle for too long.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from mediguide.errors import InvalidInputError, NotFoundError
from mediguide.models.domain import ChatMessage, ChatSession
from mediguide.services.assistant_service import AssistantService
from mediguide.storage.memory_store import KeyValueStore, StoreEntry
from mediguide.utils.prompts import load_catalog, load_prompts
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)
PROMPTS = load_prompts()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_suggestions(user_message: str) -> list[str]:
    """
    Picks follow-up suggestions from the first keyword group the message hits.

    Args:
        user_message: Latest user message

    Returns:
        Suggestions of the matching group, or the default set
    """
    catalog = load_catalog()
    message = user_message.lower()
    for group in catalog["chat_suggestions"]:
        if any(keyword in message for keyword in group["keywords"]):
            return list(group["suggestions"])
    return list(catalog["chat_default_suggestions"])


class ChatService:
    """
    Service for chat session lifecycle and message exchange.
    """

    def __init__(
        self,
        assistant: AssistantService,
        store: KeyValueStore,
        idle_timeout: float = 3600.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize chat service.

        Args:
            assistant: Produces the bot replies
            store: Session store keyed by session id
            idle_timeout: Seconds of inactivity before a session is swept
            clock: Returns the current UTC time
        """
        self.assistant = assistant
        self.store = store
        self.idle_timeout = idle_timeout
        self.clock = clock

    def _message(self, text: str, sender: str) -> ChatMessage:
        return ChatMessage(
            id=f"msg_{uuid.uuid4().hex[:12]}",
            message=text,
            sender=sender,
            timestamp=self.clock(),
        )

    def _get_session(self, session_id: str) -> ChatSession:
        entry = self.store.get(session_id)
        if entry is None:
            raise NotFoundError(
                "Chat session does not exist or has expired",
                error="Session not found",
            )
        return entry.value

    def start_session(self) -> dict[str, Any]:
        """Opens a session seeded with the greeting message."""
        now = self.clock()
        greeting = self._message(PROMPTS["chat"]["greeting"], "bot")
        session = ChatSession(
            id=f"chat_{uuid.uuid4().hex}",
            messages=[greeting],
            created_at=now,
            last_activity=now,
        )
        self.store.set(session.id, session)
        logger.info("chat_session_started", session_id=session.id)

        catalog = load_catalog()
        return {
            "sessionId": session.id,
            "initialMessage": greeting.to_payload(),
            "quickReplies": list(catalog["chat_start_quick_replies"]),
            "features": list(catalog["chat_features"]),
        }

    async def send_message(
        self, session_id: str | None, message: str | None
    ) -> dict[str, Any]:
        """
        Records a user message and the assistant's reply.

        Args:
            session_id: Target session
            message: User message

        Returns:
            Both messages, suggestions and session info

        Raises:
            InvalidInputError: If session_id or message is empty
            NotFoundError: If the session does not exist
        """
        if not session_id or not message or not message.strip():
            raise InvalidInputError(
                "Session ID and message are required", error="Missing required fields"
            )

        session = self._get_session(session_id)
        user_message = self._message(message, "user")
        session.messages.append(user_message)

        reply = await self.assistant.chat_reply(message, session.context)

        # The session may have been ended while the reply was generated
        current = self.store.get(session_id)
        if current is None or current.value is not session:
            logger.warning("chat_reply_dropped", session_id=session_id)
            raise NotFoundError(
                "Chat session does not exist or has expired",
                error="Session not found",
            )

        bot_message = self._message(reply, "bot")
        session.messages.append(bot_message)
        session.last_activity = self.clock()
        session.context += f"\nUser: {message}\nBot: {reply}"
        self.store.set(session.id, session)

        logger.info(
            "chat_message_exchanged",
            session_id=session.id,
            message_count=len(session.messages),
        )
        return {
            "userMessage": user_message.to_payload(),
            "botMessage": bot_message.to_payload(),
            "suggestions": generate_suggestions(message),
            "sessionInfo": {
                "id": session.id,
                "messageCount": len(session.messages),
                "lastActivity": session.last_activity.isoformat(),
            },
        }

    def get_history(self, session_id: str) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: If the session does not exist
        """
        session = self._get_session(session_id)
        return {
            "sessionId": session.id,
            "messages": [m.to_payload() for m in session.messages],
            "messageCount": len(session.messages),
            "createdAt": session.created_at.isoformat(),
            "lastActivity": session.last_activity.isoformat(),
        }

    def end_session(self, session_id: str | None) -> dict[str, Any]:
        """
        Deletes a session and reports its duration in milliseconds.

        Raises:
            InvalidInputError: If session_id is empty
            NotFoundError: If the session does not exist
        """
        if not session_id:
            raise InvalidInputError("Session ID is required", error="Missing required fields")

        session = self._get_session(session_id)
        self.store.delete(session_id)
        duration = self.clock() - session.created_at
        logger.info("chat_session_ended", session_id=session_id)
        return {
            "message": PROMPTS["chat"]["session_ended"],
            "sessionId": session_id,
            "duration": int(duration.total_seconds() * 1000),
            "messageCount": len(session.messages),
        }

    @staticmethod
    def quick_replies() -> dict[str, Any]:
        replies = list(load_catalog()["chat_quick_replies"])
        categories = list(dict.fromkeys(r["category"] for r in replies))
        return {
            "quickReplies": replies,
            "categories": categories,
            "total": len(replies),
        }

    def sweep_idle_sessions(self, now: datetime | None = None) -> int:
        """
        Deletes sessions whose last activity is already older than the idle
        timeout at sweep time. Sessions created or touched during the sweep
        are never stale and survive.

        Returns:
            Number of removed sessions
        """
        cutoff = (now or self.clock()) - timedelta(seconds=self.idle_timeout)

        def is_stale(entry: StoreEntry) -> bool:
            return entry.value.last_activity < cutoff

        removed = self.store.sweep(is_stale)
        if removed:
            logger.info("chat_sessions_swept", removed=removed, remaining=len(self.store))
        return removed
