"""
Search tracing.

Responsibilities:
- Model a per-request trace of every pipeline stage (timing, inputs, outputs, errors).
- Summarise traces for API responses.
- Emit finished traces to logging and, optionally, a SQL table without ever
  failing the request.
"""
