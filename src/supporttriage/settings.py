from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEY = "YOUR_ACTUAL_API_KEY"


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    openai_api_key: str | None = None
    openai_base_url: str | None = "https://api.openai.com/v1"
    request_timeout_seconds: float = 60.0

    cors_origins: str = "*"

    knowledge_base_path: Path | None = None

    greeting: str = "Hello! I'm your AI Customer Service Agent. How can I help you today?"

    search_knowledge_base_system_prompt: str = (
        "You are a knowledge base search assistant for a customer service team. "
        "You are given the full knowledge base below and a customer query. "
        "If an entry in the knowledge base directly answers the query, return a "
        "JSON object with keys: snippet (the answer text, quoted from the "
        "knowledge base), relevantTopic (the matching question). If nothing in "
        "the knowledge base answers the query, return "
        '{"snippet": null, "relevantTopic": null}.\n\n'
        "Knowledge base:\n{knowledge_base}"
    )
    classify_intent_system_prompt: str = (
        "You are an intent classifier for customer service messages. Classify "
        "the message into exactly one intent: \"Technical Support\", "
        "\"Product Feature Request\", \"Sales Lead\" or \"Unknown\". Also extract "
        "a short topic (a few words, e.g. \"password reset\", \"dark mode\"). "
        "Return a JSON object with keys: intent (string), topic (string or null)."
    )
    determine_escalation_system_prompt: str = (
        "You are an escalation assistant for a customer service team. Given the "
        "customer query, its classified intent, any knowledge base snippet used "
        "and the agent's response, decide whether a human team should take over. "
        "Escalate when the customer is frustrated, the issue is urgent or "
        "security related, the knowledge base did not help with a technical "
        "problem, or the message is a promising sales lead. Return a JSON object "
        "with keys: escalate (bool), reason (string or null)."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="allow",
    )

    @property
    def configuration_error(self) -> str | None:
        """Banner text when the language model backend cannot be used, else None."""
        key = (self.openai_api_key or "").strip()
        if not key or key == PLACEHOLDER_API_KEY:
            return (
                "API Key is not configured or is using a placeholder. "
                "Please set a valid OPENAI_API_KEY environment variable."
            )
        return None


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    try:
        return _SETTINGS
    except NameError:
        _SETTINGS = Settings()
        return _SETTINGS
