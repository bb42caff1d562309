"""
Pydantic data models for the Sentiment Analysis Service.

Includes:
- Enums (SentimentLabel, CircuitState)
- Analysis models (AnalysisRequest, Classification, AnalysisResult)
- LLM models (LLMGenerationRequest, LLMGenerationResponse)
"""

from sentiment_service.models.enums import CircuitState, SentimentLabel
from sentiment_service.models.analysis import (
    AnalysisRequest,
    AnalysisResult,
    Classification,
)
from sentiment_service.models.llm_models import (
    LLMGenerationRequest,
    LLMGenerationResponse,
)

__all__ = [
    "SentimentLabel",
    "CircuitState",
    "AnalysisRequest",
    "AnalysisResult",
    "Classification",
    "LLMGenerationRequest",
    "LLMGenerationResponse",
]
