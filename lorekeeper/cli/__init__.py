"""Command-line interface for lorekeeper."""
