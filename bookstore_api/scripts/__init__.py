"""Operational scripts (database seeding)."""
