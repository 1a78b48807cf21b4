"""Cross-cutting logging and metrics helpers."""
