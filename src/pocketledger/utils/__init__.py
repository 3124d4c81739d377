"""Utility modules for pocketledger."""
