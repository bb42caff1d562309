"""
Unit tests for the Sentiment Analysis Service.

Test individual components in isolation:
- Data models and settings
- Prompt builder and response parser
- Ollama client (httpx.MockTransport)
- Circuit breaker, admission control, backoff
- Result stores (memory, SQLite, mocked Redis)
- Request coordinator (caching, coalescing, load shedding)
- API routes and Celery task
"""
