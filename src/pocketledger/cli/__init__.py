"""CLI package for pocketledger."""
