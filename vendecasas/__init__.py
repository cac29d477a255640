"""Vendecasas: property listings and contact messages over HTTP."""

__version__ = "1.0.0"
