"""Venue fetchers and adapters."""
