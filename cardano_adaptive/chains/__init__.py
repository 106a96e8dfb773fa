"""Intent orchestration and action-chain execution."""
