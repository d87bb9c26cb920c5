"""CSV bulk import and permission evaluation for the inventory store."""

__version__ = "0.1.0"
