"""Lumora product verification and counterfeit-detection engine."""

__version__ = "0.1.0"
