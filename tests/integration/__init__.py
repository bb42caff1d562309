"""
Integration tests for the Sentiment Analysis Service.

Test components against real external services (skipped when absent):
- Ollama client (real classification calls)
- Redis result store
- API endpoints end to end (FastAPI TestClient + real Ollama)
"""
