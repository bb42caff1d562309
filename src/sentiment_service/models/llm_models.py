"""
LLM-specific data models for the request/response cycle.

These models are internal to the LLM layer and describe the raw exchange
with the inference server. They are kept apart from the business models
(Classification, AnalysisResult) so the backend can be swapped.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class LLMGenerationRequest(BaseModel):
    """Provider-neutral generation request."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="Complete prompt (system + user)")
    model: str = Field(..., description="Model name/identifier (e.g., 'llama3.2:3b')")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=128, ge=1, le=8192, description="Maximum tokens to generate")
    format_schema: Optional[Dict[str, Any]] = Field(
        default=None,
        description="JSON Schema for structured output constraint (Ollama format parameter)"
    )
    seed: Optional[int] = Field(default=None, description="Random seed for reproducibility")


class LLMGenerationResponse(BaseModel):
    """
    Raw generated text plus metadata.

    Mapping the text onto a sentiment label happens in the response parser.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Generated text (JSON or free-form)")
    model_version: str = Field(..., description="Model reported by the server")
    finish_reason: str = Field(..., description="'stop' or 'incomplete'")
    prompt_tokens: Optional[int] = Field(default=None, description="Tokens in prompt")
    completion_tokens: Optional[int] = Field(default=None, description="Tokens in completion")
    latency_ms: int = Field(..., ge=0, description="Latency of the successful attempt in milliseconds")
    attempts: int = Field(default=1, ge=1, description="HTTP attempts made, including retries")
    raw_metadata: Dict[str, Any] = Field(default_factory=dict)
