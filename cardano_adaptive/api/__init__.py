"""HTTP request boundary."""
