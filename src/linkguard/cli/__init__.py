"""Command line interface for LinkGuard."""
