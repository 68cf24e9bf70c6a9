import asyncio
import logging
from typing import Callable, List, Tuple

from ..models import (
    ConversationMode,
    ConversationState,
    ConversationView,
    Intent,
    Message,
    Sender,
)
from .responses import (
    Classified,
    KBHit,
    ResolutionOutcome,
    Unclassified,
    classification_event,
    escalation_notice,
    fallback_topic,
    render_response,
)
from .tools import SupportTools

logger = logging.getLogger(__name__)

DEFAULT_GREETING = "Hello! I'm your AI Customer Service Agent. How can I help you today?"
NEXT_QUESTION_PROMPT = "Please ask your next question."
RESOLVED_REPLY = "Great! I'm glad I could help."
NOT_RESOLVED_REPLY = (
    "I understand. Could you please rephrase your question or provide more details "
    "about the issue?"
)
REPHRASE_REPLY = "Okay, please rephrase your previous question or provide more details."
KB_MISS_EVENT = "No direct answer in Knowledge Base. Proceeding with AI classification..."
ERROR_PREFIX = "An error occurred while processing your request."
ERROR_FOLLOW_UP = (
    "The agent has finished processing your query due to an error. "
    "Click 'Ask Another Question' below to continue."
)

Listener = Callable[[ConversationView], None]


class ConversationEngine:
    """Drives one support conversation from query to resolution.

    Every user action is a method returning True when it was accepted and
    False when the conversation is not in a state that allows it. Rejected
    actions leave the state untouched.
    """

    def __init__(
        self,
        tools: SupportTools,
        configuration_error: str | None = None,
        greeting: str = DEFAULT_GREETING,
    ) -> None:
        self.state = ConversationState()
        self._tools = tools
        self._listeners: List[Listener] = []
        self._escalation_task: asyncio.Task[None] | None = None

        if configuration_error:
            logger.error(configuration_error)
            self.state.configuration_error = configuration_error
            self._append(configuration_error, Sender.SYSTEM, Intent.UNKNOWN)
        else:
            self._append(greeting, Sender.AGENT, Intent.UNKNOWN)
            self.state.is_conversation_active = True

    @property
    def mode(self) -> ConversationMode:
        return self.state.mode

    @property
    def messages(self) -> List[Message]:
        return list(self.state.messages)

    def snapshot(self) -> ConversationView:
        return ConversationView.from_state(self.state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with a fresh snapshot after every state change.

        Returns a function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        view = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.exception("Conversation listener failed: %s", e)

    def _append(
        self,
        text: str,
        sender: Sender,
        intent: Intent | None = None,
        topic: str | None = None,
    ) -> Message:
        message = Message(text=text, sender=sender, intent=intent, topic=topic)
        self.state.messages.append(message)
        return message

    async def submit(self, text: str) -> bool:
        """Run one resolution pass for a user query.

        Accepted only while the conversation is idle and the escalation check
        of the previous pass has settled, so an escalation notice always lands
        before the next user message.

        Args:
            text: Raw user query (str). Blank input is rejected.

        Returns:
            bool: True when the pass ran, including passes that failed and
                deactivated the conversation.
        """
        if self.state.configuration_error or not text or not text.strip():
            return False
        if self.mode is not ConversationMode.IDLE_ACCEPTING_INPUT:
            logger.debug("Ignoring submit in mode %s", self.mode.value)
            return False
        if self.state.escalation_pending:
            logger.debug("Ignoring submit while the escalation check is pending")
            return False

        self.state.is_loading = True
        self._append(text, Sender.USER)

        try:
            self._notify()
            outcome, kb_snippet = await self._resolve(text)
            response_text = render_response(outcome)
            self._append(response_text, Sender.AGENT, outcome.intent, outcome.topic)
            self.state.last_agent_intent = outcome.intent
            self.state.awaiting_resolution_confirmation = True
            self.state.is_conversation_active = True
        except Exception as e:
            logger.exception("Error processing message: %s", e)
            self._append(f"{ERROR_PREFIX} Details: {e}", Sender.SYSTEM)
            self.state.awaiting_resolution_confirmation = False
            self.state.last_agent_intent = None
            self.state.is_conversation_active = False
            self._append(ERROR_FOLLOW_UP, Sender.SYSTEM)
        else:
            self.state.escalation_pending = True
            self._escalation_task = asyncio.create_task(
                self._escalate(text, outcome, kb_snippet, response_text)
            )
        finally:
            self.state.is_loading = False
            self._notify()
        return True

    async def _resolve(self, query: str) -> Tuple[ResolutionOutcome, str | None]:
        kb_result = await self._tools.search_knowledge_base(query)
        snippet = kb_result.snippet if kb_result is not None else None

        outcome: ResolutionOutcome
        if snippet:
            outcome = KBHit(
                topic=kb_result.relevant_topic or fallback_topic(query),
                snippet=snippet,
            )
            self._append(classification_event(outcome), Sender.SYSTEM, outcome.intent, outcome.topic)
            return outcome, snippet

        self._append(KB_MISS_EVENT, Sender.SYSTEM, Intent.UNKNOWN)
        self._notify()

        classification = await self._tools.classify_intent(query)
        if classification is None:
            outcome = Unclassified()
            self._append(classification_event(outcome), Sender.SYSTEM, Intent.UNKNOWN)
        else:
            outcome = Classified(
                intent=classification.intent,
                topic=classification.topic or fallback_topic(query),
            )
            self._append(classification_event(outcome), Sender.SYSTEM, outcome.intent, outcome.topic)
        return outcome, None

    async def _escalate(
        self,
        query: str,
        outcome: ResolutionOutcome,
        kb_snippet: str | None,
        response_text: str,
    ) -> None:
        try:
            decision = await self._tools.determine_escalation(
                query, outcome.intent, kb_snippet, response_text
            )
        except Exception as e:
            logger.warning("Escalation check failed: %s", e)
            decision = None

        if decision is not None and decision.escalate:
            logger.info("Escalating %s query: %s", outcome.intent.value, decision.reason)
            self._append(
                escalation_notice(outcome.intent, decision),
                Sender.SYSTEM,
                outcome.intent,
                outcome.topic,
            )
        self.state.escalation_pending = False
        self._notify()

    async def wait_for_escalation(self) -> None:
        """Wait until the escalation check of the last pass has settled."""
        task = self._escalation_task
        if task is not None and not task.done():
            await task
        self._escalation_task = None

    def start_new_query(self) -> bool:
        """Prompt for the next question and reopen free-text input.

        Returns:
            bool: False while a pass is in flight or after a configuration error.
        """
        if self.state.configuration_error or self.state.is_loading:
            return False
        self._append(NEXT_QUESTION_PROMPT, Sender.SYSTEM, Intent.UNKNOWN)
        self.state.awaiting_resolution_confirmation = False
        self.state.last_agent_intent = None
        self.state.is_conversation_active = True
        self._notify()
        return True

    def confirm_resolved(self) -> bool:
        """Acknowledge a resolved issue, then start a new query.

        Returns:
            bool: False unless the user was asked whether a known-intent answer helped.
        """
        if self.mode is not ConversationMode.AWAITING_CONFIRMATION_RESOLVED:
            return False
        self._append(RESOLVED_REPLY, Sender.AGENT, self.state.last_agent_intent or Intent.UNKNOWN)
        self.state.awaiting_resolution_confirmation = False
        self.state.last_agent_intent = None
        return self.start_new_query()

    def confirm_not_resolved(self) -> bool:
        """Ask for more detail after an answer that did not help.

        Returns:
            bool: False unless the user was asked whether a known-intent answer helped.
        """
        if self.mode is not ConversationMode.AWAITING_CONFIRMATION_RESOLVED:
            return False
        self._append(NOT_RESOLVED_REPLY, Sender.AGENT, self.state.last_agent_intent or Intent.UNKNOWN)
        self._reopen_input()
        return True

    def rephrase_after_unknown(self) -> bool:
        """Ask the user to rephrase a query the agent could not place.

        Returns:
            bool: False unless the last answer had the UNKNOWN intent.
        """
        if self.mode is not ConversationMode.AWAITING_CONFIRMATION_UNKNOWN:
            return False
        self._append(REPHRASE_REPLY, Sender.AGENT, Intent.UNKNOWN)
        self._reopen_input()
        return True

    def _reopen_input(self) -> None:
        self.state.awaiting_resolution_confirmation = False
        self.state.last_agent_intent = None
        self.state.is_conversation_active = True
        self._notify()
