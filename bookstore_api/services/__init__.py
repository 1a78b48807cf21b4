"""Business logic services.

This package contains service classes and pure functions that implement
the catalog import rules, sales analytics and order workflow on top of
the repositories.
"""
