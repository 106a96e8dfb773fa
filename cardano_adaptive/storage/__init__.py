"""Persistence layer: registry records and action chains."""
