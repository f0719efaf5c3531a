"""Texas Hold'em games hosted in Discord channels."""

__version__ = "0.1.0"
