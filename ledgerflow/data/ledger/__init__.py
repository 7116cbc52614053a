"""Ledger entries (manual and recurring)."""
