import json
import logging
import re
from typing import Any, Dict, List, Protocol

import openai
from openai import AsyncOpenAI

from ..knowledge_base import load_knowledge_base
from ..models import EscalationDecision, Intent, IntentClassification, KBSearchResult
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class CollaboratorError(RuntimeError):
    """Raised when the language model backend cannot be reached or rejects a call."""


class SupportTools(Protocol):
    """The three services the conversation engine consults for every query."""

    async def search_knowledge_base(self, query: str) -> KBSearchResult | None: ...

    async def classify_intent(self, query: str) -> IntentClassification | None: ...

    async def determine_escalation(
        self,
        query: str,
        intent: Intent,
        kb_snippet: str | None,
        response_text: str,
    ) -> EscalationDecision | None: ...


def _extract_json(content: str) -> Dict[str, Any] | None:
    """Return the first JSON object embedded in a model reply, if any."""
    json_match = re.search(r"\{.*\}", content, re.DOTALL)
    if not json_match:
        return None
    try:
        data = json.loads(json_match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class OpenAISupportTools:
    """KB search, intent classification and escalation backed by chat completions."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncOpenAI | None = None,
        knowledge_base: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._knowledge_base = knowledge_base

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                timeout=self._settings.request_timeout_seconds,
            )
        return self._client

    @property
    def knowledge_base(self) -> str:
        if self._knowledge_base is None:
            self._knowledge_base = load_knowledge_base(self._settings.knowledge_base_path)
        return self._knowledge_base

    async def _complete_json(self, tool: str, messages: List[Dict[str, str]]) -> Dict[str, Any] | None:
        try:
            response = await self.client.chat.completions.create(
                model=self._settings.model,
                messages=messages,
                temperature=self._settings.temperature,
            )
        except openai.APIError as e:
            logger.error("Tool %s request failed: %s", tool, e)
            raise CollaboratorError(f"{tool} request failed: {e}") from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, KeyError, IndexError) as e:
            logger.error("Tool %s response parse failed: %s", tool, e)
            return None

        data = _extract_json(content)
        if data is None:
            logger.warning("Tool %s returned no JSON object: %s", tool, content[:200])
        return data

    async def search_knowledge_base(self, query: str) -> KBSearchResult | None:
        """Look the query up in the knowledge base.

        Returns None when nothing in the knowledge base answers the query.
        """
        system_prompt = self._settings.search_knowledge_base_system_prompt.replace(
            "{knowledge_base}", self.knowledge_base
        )
        data = await self._complete_json(
            "search_knowledge_base",
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": f"Customer query: {query}"},
            ],
        )
        if data is None:
            return None
        snippet = _clean(data.get("snippet"))
        if snippet is None:
            return None
        return KBSearchResult(
            snippet=snippet,
            relevant_topic=_clean(data.get("relevantTopic") or data.get("relevant_topic")),
        )

    async def classify_intent(self, query: str) -> IntentClassification | None:
        """Classify the query. Returns None when the reply names no valid intent."""
        data = await self._complete_json(
            "classify_intent",
            [
                {"role": "system", "content": self._settings.classify_intent_system_prompt},
                {"role": "user", "content": f"Classify this message: {query}"},
            ],
        )
        if data is None:
            return None
        intent = Intent.parse(data.get("intent"))
        if intent is None:
            logger.warning("Tool classify_intent returned unsupported intent: %r", data.get("intent"))
            return None
        return IntentClassification(intent=intent, topic=_clean(data.get("topic")))

    async def determine_escalation(
        self,
        query: str,
        intent: Intent,
        kb_snippet: str | None,
        response_text: str,
    ) -> EscalationDecision | None:
        """Ask whether a human team should take over this conversation."""
        data = await self._complete_json(
            "determine_escalation",
            [
                {"role": "system", "content": self._settings.determine_escalation_system_prompt},
                {
                    "role": "user",
                    "content": (
                        f"Customer query: {query}\n"
                        f"Classified intent: {intent.value}\n"
                        f"Knowledge base snippet: {kb_snippet or 'None'}\n"
                        f"Agent response: {response_text}"
                    ),
                },
            ],
        )
        if data is None:
            return None
        escalate = data.get("escalate", False)
        if isinstance(escalate, str):
            escalate = escalate.strip().lower() == "true"
        return EscalationDecision(escalate=bool(escalate), reason=_clean(data.get("reason")))
