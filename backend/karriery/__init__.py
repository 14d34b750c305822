"""Karriery account, support and contact backend."""

__version__ = "1.0.0"
