"""Reporting: export and charts."""
