"""Citizen Records - access-controlled citizen identity records on a ledger."""

__version__ = "0.1.0"
