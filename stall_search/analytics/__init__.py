"""
Search-log analytics.

Responsibilities:
- Record client-reported search events (mode, filters, result counts).
- Aggregate them into usage statistics for the admin view.
"""
