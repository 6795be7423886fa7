"""CLI module for gambit."""
