import logging
from typing import Dict

from ..settings import get_settings
from .engine import ConversationEngine
from .tools import OpenAISupportTools, SupportTools

logger = logging.getLogger(__name__)


class SupportTriageService:
    """Keeps one ConversationEngine per session for the lifetime of the process."""

    def __init__(self, tools: SupportTools | None = None) -> None:
        self._tools = tools
        self._engines: Dict[str, ConversationEngine] = {}

    @property
    def tools(self) -> SupportTools:
        if self._tools is None:
            self._tools = OpenAISupportTools()
        return self._tools

    def get_engine(self, session_id: str) -> ConversationEngine:
        """Return or create the ConversationEngine for the given session_id.

        Args:
            session_id: Unique identifier for the session (str).

        Returns:
            ConversationEngine: Engine seeded with the greeting, or in the
                configuration-error state when no API key is configured.
        """
        if session_id not in self._engines:
            settings = get_settings()
            self._engines[session_id] = ConversationEngine(
                tools=self.tools,
                configuration_error=settings.configuration_error,
                greeting=settings.greeting,
            )
            logger.info("Started conversation session_id=%s", session_id)
        return self._engines[session_id]

    def end_session(self, session_id: str) -> bool:
        """Forget the conversation for session_id. Returns True if one existed."""
        return self._engines.pop(session_id, None) is not None


_SERVICE = SupportTriageService()


def get_service() -> SupportTriageService:
    return _SERVICE


def get_engine(session_id: str) -> ConversationEngine:
    return _SERVICE.get_engine(session_id)


__all__ = [
    "SupportTriageService",
    "get_engine",
    "get_service",
]
