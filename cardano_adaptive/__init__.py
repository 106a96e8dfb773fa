"""Cardano Adaptive: natural-language front-end for Cardano dApps."""

__version__ = "0.1.0"
__logo__ = "₳"
