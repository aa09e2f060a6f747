"""Command-line tools for kbindex."""
