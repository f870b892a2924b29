"""taskhub API — FastAPI application, request schemas and response envelopes."""
