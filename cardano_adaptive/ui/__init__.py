"""Interface schema compilation into renderer-agnostic form schemas."""
