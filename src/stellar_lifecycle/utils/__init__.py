"""Utility modules for stellar_lifecycle."""

from stellar_lifecycle.utils.locks import SingleFlight

__all__ = ["SingleFlight"]
