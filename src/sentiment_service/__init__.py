"""
Sentiment analysis service.

Turns free text into a sentiment label (POSITIVE / NEGATIVE / NEUTRAL /
MIXED) with a confidence score, using a local Ollama model:
- Results stored by content fingerprint and reused while fresh
- Concurrent identical requests coalesced into one backend call
- Backend calls capped, queued with a bound, and circuit-broken when failing

Architecture: FastAPI + Ollama inference + SQL/Redis result store + Celery batch
"""

__version__ = "0.1.0"
