"""
Free-text query interpretation.

Responsibilities:
- Ask the LLM to extract a structured search intent from a raw query.
- Decode the reply leniently and normalise every field.
- Fail loudly (``ParseError``) only when the reply is not JSON at all.
"""
