"""Recurring obligations: bills and subscriptions with a billing period."""
