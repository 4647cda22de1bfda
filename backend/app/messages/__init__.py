"""Append-only chat message log."""
