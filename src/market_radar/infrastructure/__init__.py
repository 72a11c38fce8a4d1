"""Cross-cutting infrastructure: observability."""
