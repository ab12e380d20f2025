"""Shared utilities: structured logging and ULID generation."""
