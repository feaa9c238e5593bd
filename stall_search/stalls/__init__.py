"""
Candidate store for food stalls.

Responsibilities:
- Load the stall dataset (and its precomputed embeddings) into memory.
- Filter open stalls by cuisine and price through named price policies.
- Serve vector-similarity lookups for free-text queries.
- Define the stall record and its public response shape.
"""
