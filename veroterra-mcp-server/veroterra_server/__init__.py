"""Veroterra order server: product catalog, order cart and totals."""

__version__ = "0.1.0"
