"""Command line interface for docpilot."""
