"""Estimate agent services: persistence, LLM, embeddings and retrieval."""
