"""Charity registrations and donations service."""
__version__ = "1.0.0"
