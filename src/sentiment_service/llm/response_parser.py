"""
Map raw backend output onto a sentiment label and confidence.

Two shapes are accepted:

1. Structured JSON, as requested through the Ollama ``format`` schema:
   ``{"label": "POSITIVE", "confidence": 0.93}``. Common aliases
   (``sentiment``, ``score``), lowercase labels and percentage confidences
   are normalised before the object is checked against CLASSIFICATION_SCHEMA.
2. Free-form text (models that ignore the format constraint): the earliest
   label or synonym ("favorable", "ambivalent") that is not negated wins;
   the confidence comes from a percentage (at most 100%) or a
   "confidence: 0.8" style phrase, else the configured default.

Anything else raises MalformedResponse.
"""

import json
import re
from typing import Any, Optional

import structlog
from jsonschema import Draft7Validator

from sentiment_service.llm.exceptions import MalformedResponse
from sentiment_service.models.analysis import Classification
from sentiment_service.models.enums import SentimentLabel
from sentiment_service.monitoring.metrics import malformed_responses_total

logger = structlog.get_logger(__name__)


CLASSIFICATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "label": {
            "type": "string",
            "enum": [label.value for label in SentimentLabel],
        },
        "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
    },
    "required": ["label", "confidence"],
}

LABEL_KEYS = ("label", "sentiment", "value", "class")
CONFIDENCE_KEYS = ("confidence", "score", "probability")

LABEL_SYNONYMS: dict[str, SentimentLabel] = {
    **{label.value: label for label in SentimentLabel},
    "FAVORABLE": SentimentLabel.POSITIVE,
    "FAVOURABLE": SentimentLabel.POSITIVE,
    "UNFAVORABLE": SentimentLabel.NEGATIVE,
    "UNFAVOURABLE": SentimentLabel.NEGATIVE,
    "AMBIVALENT": SentimentLabel.MIXED,
}

_LABEL_PATTERN = re.compile(
    r"\b(" + "|".join(sorted(LABEL_SYNONYMS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
# "not positive", "isn't really negative", "never neutral"
_NEGATION_PATTERN = re.compile(r"(?:\b(?:not|never|no)|n't)\s+(?:\w+\s+)?$", re.IGNORECASE)
_JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
_PERCENT_PATTERN = re.compile(r"(\d{1,3}(?:\.\d+)?)\s*%")
_CONFIDENCE_PHRASE_PATTERN = re.compile(
    r"(?:confidence|score|certainty|probability)\W{0,3}(?:of|is|=)?\W{0,3}(\d*\.?\d+)",
    re.IGNORECASE,
)


class ResponseParser:
    """
    Parse backend text into a Classification.

    Stateless apart from the compiled schema validator; one instance is
    shared by the client.
    """

    def __init__(self, default_confidence: float = 0.6):
        """
        Args:
            default_confidence: Confidence assigned to free-form answers
                that state a label but no score
        """
        self.default_confidence = default_confidence
        self._validator = Draft7Validator(CLASSIFICATION_SCHEMA)

    def parse(self, content: str, model_id: str) -> Classification:
        """
        Parse generated text.

        Args:
            content: Text generated by the backend
            model_id: Model identifier to attach to the classification

        Returns:
            Classification with a label from SentimentLabel and confidence in [0, 1]

        Raises:
            MalformedResponse: No label could be extracted or the
                confidence is out of range
        """
        if not content or not content.strip():
            malformed_responses_total.labels(reason="empty_content").inc()
            raise MalformedResponse("Backend returned empty content", raw_content=content)

        data = self._load_json_object(content)
        if data is not None:
            label, confidence = self._from_structured(data, content)
            mode = "structured"
        else:
            label, confidence = self._from_free_text(content)
            mode = "free_text"

        logger.debug(
            "Parsed backend response",
            mode=mode,
            label=label.value,
            confidence=confidence,
        )
        return Classification(label=label, confidence=confidence, model_id=model_id)

    def _load_json_object(self, content: str) -> Optional[dict]:
        """Return the JSON object in content, also when wrapped in prose or code fences."""
        candidates = [content.strip()]
        match = _JSON_OBJECT_PATTERN.search(content)
        if match:
            candidates.append(match.group(0))

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    def _from_structured(self, data: dict, content: str) -> tuple[SentimentLabel, float]:
        raw_label = _first_present(data, LABEL_KEYS)
        raw_confidence = _first_present(data, CONFIDENCE_KEYS)

        # {"sentiment": {"value": "positive", "confidence": 0.9}}
        if isinstance(raw_label, dict):
            nested = raw_label
            raw_label = _first_present(nested, LABEL_KEYS)
            if raw_confidence is None:
                raw_confidence = _first_present(nested, CONFIDENCE_KEYS)

        label = coerce_label(raw_label)
        if label is None:
            malformed_responses_total.labels(reason="unknown_label").inc()
            raise MalformedResponse(
                f"No recognised sentiment label in structured response: {raw_label!r}",
                raw_content=content,
            )

        if raw_confidence is None:
            confidence = self.default_confidence
        else:
            confidence = _coerce_confidence(raw_confidence, content)

        normalized = {"label": label.value, "confidence": confidence}
        errors = sorted(self._validator.iter_errors(normalized), key=lambda e: list(e.path))
        if errors:
            malformed_responses_total.labels(reason="schema_violation").inc()
            raise MalformedResponse(
                "Structured response violates classification schema",
                raw_content=content,
                details={"validation_errors": [e.message for e in errors]},
            )
        return label, confidence

    def _from_free_text(self, content: str) -> tuple[SentimentLabel, float]:
        label = _first_asserted_label(content)
        if label is None:
            malformed_responses_total.labels(reason="no_label").inc()
            raise MalformedResponse(
                "No sentiment label found in free-form response",
                raw_content=content,
            )

        percent = _PERCENT_PATTERN.search(content)
        phrase = _CONFIDENCE_PHRASE_PATTERN.search(content)
        if percent:
            confidence = _percent_to_confidence(percent.group(1), content)
        elif phrase:
            confidence = _coerce_confidence(phrase.group(1), content)
        else:
            confidence = self.default_confidence
        return label, confidence


def coerce_label(value: Any) -> Optional[SentimentLabel]:
    """Case-insensitive mapping of a raw label or synonym onto SentimentLabel."""
    if not isinstance(value, str):
        return None
    return LABEL_SYNONYMS.get(value.strip().upper())


def _first_asserted_label(content: str) -> Optional[SentimentLabel]:
    # Earliest mention wins, skipping negated ones ("not positive")
    for match in _LABEL_PATTERN.finditer(content):
        if _NEGATION_PATTERN.search(content, 0, match.start()):
            continue
        return LABEL_SYNONYMS[match.group(1).upper()]
    return None


def _first_present(data: dict, keys: tuple[str, ...]) -> Any:
    lowered = {str(k).lower(): v for k, v in data.items()}
    for key in keys:
        if key in lowered and lowered[key] is not None:
            return lowered[key]
    return None


def _coerce_confidence(value: Any, content: str) -> float:
    if isinstance(value, bool):
        value = None
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        malformed_responses_total.labels(reason="invalid_confidence").inc()
        raise MalformedResponse(
            f"Confidence is not a number: {value!r}", raw_content=content
        )

    # Percent style ("87" meaning 87%)
    if 1.0 < confidence <= 100.0:
        confidence = confidence / 100.0

    if not 0.0 <= confidence <= 1.0:
        malformed_responses_total.labels(reason="invalid_confidence").inc()
        raise MalformedResponse(
            f"Confidence out of range: {value!r}", raw_content=content
        )
    return round(confidence, 6)


def _percent_to_confidence(value: str, content: str) -> float:
    percent = float(value)
    if percent > 100.0:
        malformed_responses_total.labels(reason="invalid_confidence").inc()
        raise MalformedResponse(
            f"Confidence out of range: {value}%", raw_content=content
        )
    return round(percent / 100.0, 6)
