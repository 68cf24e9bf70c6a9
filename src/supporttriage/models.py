from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List
from uuid import uuid4


class Intent(str, Enum):
    """Closed set of purposes a customer query can have."""

    TECHNICAL_SUPPORT = "Technical Support"
    PRODUCT_FEATURE_REQUEST = "Product Feature Request"
    SALES_LEAD = "Sales Lead"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "Intent | None":
        """Map a display value ("Sales Lead") or member name ("SALES_LEAD") to an Intent."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip()
        for intent in cls:
            if text.lower() in (intent.value.lower(), intent.name.lower()):
                return intent
        return None


class Sender(str, Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class ConversationMode(str, Enum):
    """Interaction mode derived from the conversation flags."""

    CONFIGURATION_ERROR = "configuration_error"
    IDLE_ACCEPTING_INPUT = "idle_accepting_input"
    PROCESSING = "processing"
    AWAITING_CONFIRMATION_UNKNOWN = "awaiting_confirmation_unknown"
    AWAITING_CONFIRMATION_RESOLVED = "awaiting_confirmation_resolved"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Message:
    """A single entry of the conversation log. Never modified once appended."""

    text: str
    sender: Sender
    intent: Intent | None = None
    topic: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form with the timestamp as ISO 8601 and enums as their values."""
        return {
            "id": self.id,
            "text": self.text,
            "sender": self.sender.value,
            "timestamp": self.timestamp.isoformat(),
            "intent": self.intent.value if self.intent else None,
            "topic": self.topic,
        }


@dataclass(frozen=True)
class IntentClassification:
    intent: Intent
    topic: str | None = None


@dataclass(frozen=True)
class KBSearchResult:
    snippet: str | None = None
    relevant_topic: str | None = None


@dataclass(frozen=True)
class EscalationDecision:
    escalate: bool
    reason: str | None = None


@dataclass
class ConversationState:
    """Per-conversation state owned by a ConversationEngine."""

    messages: List[Message] = field(default_factory=list)
    is_loading: bool = False
    is_conversation_active: bool = False
    awaiting_resolution_confirmation: bool = False
    last_agent_intent: Intent | None = None
    configuration_error: str | None = None
    escalation_pending: bool = False

    @property
    def mode(self) -> ConversationMode:
        if self.configuration_error:
            return ConversationMode.CONFIGURATION_ERROR
        if self.is_loading:
            return ConversationMode.PROCESSING
        if self.awaiting_resolution_confirmation:
            if self.last_agent_intent is Intent.UNKNOWN:
                return ConversationMode.AWAITING_CONFIRMATION_UNKNOWN
            return ConversationMode.AWAITING_CONFIRMATION_RESOLVED
        if self.is_conversation_active:
            return ConversationMode.IDLE_ACCEPTING_INPUT
        return ConversationMode.INACTIVE


@dataclass(frozen=True)
class ConversationView:
    """Read-only snapshot handed to the presentation layer."""

    messages: List[Message]
    mode: ConversationMode
    is_loading: bool
    input_enabled: bool
    show_rephrase: bool
    show_resolution_buttons: bool
    show_new_query: bool
    escalation_pending: bool
    configuration_error: str | None

    @classmethod
    def from_state(cls, state: ConversationState) -> "ConversationView":
        mode = state.mode
        return cls(
            messages=list(state.messages),
            mode=mode,
            is_loading=state.is_loading,
            input_enabled=(
                mode is ConversationMode.IDLE_ACCEPTING_INPUT and not state.escalation_pending
            ),
            show_rephrase=mode is ConversationMode.AWAITING_CONFIRMATION_UNKNOWN,
            show_resolution_buttons=mode is ConversationMode.AWAITING_CONFIRMATION_RESOLVED,
            show_new_query=mode is ConversationMode.INACTIVE,
            escalation_pending=state.escalation_pending,
            configuration_error=state.configuration_error,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the snapshot for the websocket and HTTP responses.

        Returns:
            Dict[str, Any]: Messages plus the mode and the flags that decide
                which inputs and buttons the client shows.
        """
        return {
            "messages": [m.to_dict() for m in self.messages],
            "mode": self.mode.value,
            "is_loading": self.is_loading,
            "input_enabled": self.input_enabled,
            "show_rephrase": self.show_rephrase,
            "show_resolution_buttons": self.show_resolution_buttons,
            "show_new_query": self.show_new_query,
            "escalation_pending": self.escalation_pending,
            "configuration_error": self.configuration_error,
        }
