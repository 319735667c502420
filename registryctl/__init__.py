"""Parse, validate, review and synchronise a file-based DNS subdomain registry."""

__version__ = "0.1.0"