"""Transport module for remote ledger hosts."""

from citizen_records.transport.http_client import LedgerClient, result_from_dict

__all__ = ["LedgerClient", "result_from_dict"]
