"""Database models, request/response schemas and seed data."""
