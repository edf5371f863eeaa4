"""Command-line interface for scoped-delegation."""
