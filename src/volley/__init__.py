"""VOLLEY - fire-control engine for top-down arcade shooters."""

__version__ = "0.1.0"
