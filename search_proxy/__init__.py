"""Caching proxy in front of the Algolia search and Insights APIs."""

__version__ = "0.1.0"
