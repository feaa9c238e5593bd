"""
Embeddings layer for semantic search.

Responsibilities:
- Load a multilingual E5 sentence-transformer model.
- Precompute embeddings for all stalls (offline).
- Encode free-text queries at request time.
"""
