"""
LLM client abstraction and implementations.

Components:
- BaseLLMClient: Abstract client with the backend-independent classify()
- OllamaClient: Implementation for the Ollama inference server
- PromptBuilder: Renders classification prompts from Jinja2 templates
- ResponseParser: Maps generated text onto a sentiment label + confidence
- exceptions: Backend error taxonomy
"""

from sentiment_service.llm.base_client import BaseLLMClient, OutcomeRecorder
from sentiment_service.llm.ollama_client import OllamaClient
from sentiment_service.llm.prompt_builder import PromptBuilder
from sentiment_service.llm.response_parser import CLASSIFICATION_SCHEMA, ResponseParser
from sentiment_service.llm.exceptions import (
    BackendError,
    BackendTimeout,
    BackendUnavailable,
    MalformedResponse,
)

__all__ = [
    "BaseLLMClient",
    "OutcomeRecorder",
    "OllamaClient",
    "PromptBuilder",
    "ResponseParser",
    "CLASSIFICATION_SCHEMA",
    "BackendError",
    "BackendTimeout",
    "BackendUnavailable",
    "MalformedResponse",
]
