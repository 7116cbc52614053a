"""Recurring obligation reconciliation backend."""
