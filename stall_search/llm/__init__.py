"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Expose a minimal completion capability (system prompt + message -> text).
- Leniently decode JSON objects out of free-form model replies.
"""
