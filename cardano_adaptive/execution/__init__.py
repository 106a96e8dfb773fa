"""Pluggable execution boundary (transaction building is out of process)."""
