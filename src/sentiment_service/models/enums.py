"""
Enumerations for the Sentiment Analysis Service.

Sentiment labels are a closed taxonomy: the backend output is mapped onto
exactly one of these values or rejected.
"""

from enum import Enum


class SentimentLabel(str, Enum):
    """
    Sentiment classification of a piece of text.

    Single-label: each analysed text gets exactly one value.
    MIXED covers text carrying both clearly positive and clearly negative
    sentiment.
    """

    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    MIXED = "MIXED"


class CircuitState(str, Enum):
    """State of the inference backend circuit breaker."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"

    @classmethod
    def get_ordinal(cls, state: "CircuitState") -> int:
        """Numeric value exported by the circuit state gauge (0=closed, 1=half-open, 2=open)."""
        order = [cls.CLOSED, cls.HALF_OPEN, cls.OPEN]
        return order.index(state)
