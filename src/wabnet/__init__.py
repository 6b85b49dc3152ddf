"""Opportunities board backend, listing synchronizer and admin workflow."""

__version__ = "0.1.0"
