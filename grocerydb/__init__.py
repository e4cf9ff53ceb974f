"""Grocery and recipe database with document and relational backends."""

__version__ = "0.1.0"
