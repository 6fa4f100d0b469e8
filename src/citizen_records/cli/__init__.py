"""CLI module for Citizen Records."""
