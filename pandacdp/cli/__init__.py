"""Command-line interface for pandacdp."""
