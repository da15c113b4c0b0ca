"""Retrieval-augmented generation service over PostgreSQL/pgvector and Gemini."""
