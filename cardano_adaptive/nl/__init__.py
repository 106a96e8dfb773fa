"""Natural-language intent classification."""
