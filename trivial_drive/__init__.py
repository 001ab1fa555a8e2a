"""Trivial Drive - gas tank game state merged with in-app purchase entitlements."""

__version__ = "0.1.0"
