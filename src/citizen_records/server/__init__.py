"""HTTP server for the ledger host."""

from citizen_records.server.app import app, initialize_app, run_server, status_code_for

__all__ = ["app", "initialize_app", "run_server", "status_code_for"]
