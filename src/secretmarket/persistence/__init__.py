"""Persistence — the append-only event log."""
