"""Storefront catalog import/export service."""

__version__ = "0.3.0"
