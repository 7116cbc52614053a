"""Data layer: ORM models, schemas and routes for obligations, ledger entries and budgets."""
