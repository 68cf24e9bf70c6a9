"""Agent package for the support triage assistant.

This package exposes the conversation engine and a service-style session
registry while keeping the language model collaborators and response
templates in separate modules.
"""

from .agent import SupportTriageService, get_engine, get_service
from .engine import ConversationEngine
from .tools import CollaboratorError, OpenAISupportTools, SupportTools

__all__ = [
    "CollaboratorError",
    "ConversationEngine",
    "OpenAISupportTools",
    "SupportTools",
    "SupportTriageService",
    "get_engine",
    "get_service",
]
