"""dApp registry: read-side store and action-type resolver."""
