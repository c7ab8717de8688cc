"""Shared helpers (monthly alignment)."""
