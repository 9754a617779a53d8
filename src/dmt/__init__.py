"""Command-line interface for the docmeta validator."""
