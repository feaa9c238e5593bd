"""
Search pipelines.

Responsibilities:
- Orchestrate the agent pipeline: interpret -> locate -> retrieve -> filter -> rank.
- Run the guided (structured form) and free-text (semantic) search modes.
- Shape public responses and hand traces to the recorder.
"""
