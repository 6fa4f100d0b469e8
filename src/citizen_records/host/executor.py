"""Ledger host: runs invocations as transactions.

Each invocation executes against a fresh transaction. Any service error
discards the staged write-set, so operations are all-or-nothing. Mutating
invocations are committed with read-set validation; a commit conflict causes
the invocation to be re-executed from scratch up to ``max_commit_retries``
times and is otherwise rejected. Queries are never committed.
"""

import logging
import time
import uuid
from typing import Optional

from citizen_records.config.schema import Config
from citizen_records.ledger.file_ledger import FileLedger
from citizen_records.ledger.memory import MemoryLedger
from citizen_records.logging_audit.audit import log_audit_event
from citizen_records.models.citizen import RecordVariant
from citizen_records.models.responses import InvocationResult, InvocationStatus
from citizen_records.policy.access import AccessPolicy
from citizen_records.router.operations import InvocationMode, OperationRouter
from citizen_records.service.record_service import credential_key
from citizen_records.store.record_store import RecordStore
from citizen_records.store.registry import REGISTRY_KEY, Registry, encode_registry
from citizen_records.utils.exceptions import (
    CitizenRecordsError,
    TransactionConflict,
    create_error_info,
)

logger = logging.getLogger(__name__)


class LedgerHost:
    """Transaction executor in front of the operation router.

    Args:
        ledger: Versioned ledger holding all state
        router: Operation router
        max_commit_retries: Re-executions allowed after a commit conflict

    Example:
        >>> host = LedgerHost.from_config(Config(ledger=LedgerConfig(state_file=None)))
        >>> host.bootstrap()
        >>> result = host.invoke("create", ["P1", "1990-01-01", "M"],
        ...                      {"username": "registrar", "role": "govt_admin"})
        >>> result.is_success
        True
    """

    def __init__(
        self,
        ledger: MemoryLedger,
        router: OperationRouter,
        max_commit_retries: int = 3,
    ) -> None:
        self.ledger = ledger
        self.router = router
        self.max_commit_retries = max_commit_retries

    @classmethod
    def from_config(cls, config: Config, ledger: Optional[MemoryLedger] = None) -> "LedgerHost":
        """Build a host from configuration.

        Args:
            config: Validated configuration
            ledger: Ledger to use instead of the configured one

        Returns:
            Configured LedgerHost
        """
        if ledger is None:
            if config.ledger.state_file is None:
                ledger = MemoryLedger()
            else:
                ledger = FileLedger(config.ledger.state_file)
        router = OperationRouter(AccessPolicy(config.roles), config.ledger.variant)
        return cls(ledger, router, config.ledger.max_commit_retries)

    @property
    def variant(self) -> RecordVariant:
        return self.router.variant

    def bootstrap(self, credentials: Optional[dict[str, str]] = None) -> None:
        """Seed the registry document and pre-provisioned credentials.

        An existing registry is kept as is, so bootstrapping twice never
        forgets created citizens.

        Args:
            credentials: Username -> credential text to store
        """
        tx = self.ledger.begin()
        if tx.get_state(REGISTRY_KEY) is None:
            tx.put_state(REGISTRY_KEY, encode_registry([]))
        for name, credential in (credentials or {}).items():
            tx.put_state(credential_key(name), credential.encode("utf-8"))
        self.ledger.commit(tx)
        log_audit_event(
            "LEDGER_BOOTSTRAPPED",
            {"status": "success", "credentials": len(credentials or {})},
        )

    def registered_ids(self) -> list[str]:
        """Read the registry outside any invocation (operator view)."""
        tx = self.ledger.begin()
        return Registry(RecordStore(tx, self.variant)).list()

    def invoke(
        self, function: str, args: list[str], attributes: dict[str, str]
    ) -> InvocationResult:
        """Execute a mutating invocation."""
        return self.execute(function, args, attributes, InvocationMode.INVOKE)

    def query(
        self, function: str, args: list[str], attributes: dict[str, str]
    ) -> InvocationResult:
        """Execute a read-only query."""
        return self.execute(function, args, attributes, InvocationMode.QUERY)

    def execute(
        self,
        function: str,
        args: list[str],
        attributes: dict[str, str],
        mode: InvocationMode,
    ) -> InvocationResult:
        """Execute one invocation, retrying on commit conflicts.

        Args:
            function: Invocation name
            args: Positional string arguments
            attributes: Attested caller attributes (``username``, ``role``)
            mode: Invoke or query

        Returns:
            InvocationResult; errors are reported with status ERROR and the
            error message, never raised
        """
        correlation_id = str(uuid.uuid4())
        started = time.monotonic()
        audit = {
            "function": function,
            "mode": mode.value,
            "caller": attributes.get("username"),
            "role": attributes.get("role"),
            "correlation_id": correlation_id,
        }

        attempt = 0
        while True:
            attempt += 1
            try:
                tx = self.ledger.begin(attributes)
                result = self.router.route(tx, function, args, mode)
                if mode is InvocationMode.INVOKE:
                    self.ledger.commit(tx)
            except TransactionConflict as e:
                if attempt <= self.max_commit_retries:
                    log_audit_event(
                        "COMMIT_CONFLICT",
                        {**audit, "status": "retry", "attempts": attempt, "keys": ",".join(e.keys)},
                    )
                    continue
                return self._failure(e, audit, attempt, started, args)
            except CitizenRecordsError as e:
                return self._failure(e, audit, attempt, started, args)

            result.attempts = attempt
            log_audit_event(
                "INVOCATION_COMMITTED" if mode is InvocationMode.INVOKE else "QUERY_SERVED",
                {
                    **audit,
                    "status": "success",
                    "attempts": attempt,
                    "duration": time.monotonic() - started,
                },
            )
            return result

    def _failure(
        self,
        error: CitizenRecordsError,
        audit: dict,
        attempt: int,
        started: float,
        args: list[str],
    ) -> InvocationResult:
        info = create_error_info(error, person_id=args[0] if args else None)
        log_audit_event(
            "INVOCATION_REJECTED",
            {
                **audit,
                "status": "failure",
                "attempts": attempt,
                "duration": time.monotonic() - started,
                "error_kind": info.kind,
                "error_message": info.message,
                "category": info.category.value,
            },
        )
        return InvocationResult(
            function=audit["function"],
            status=InvocationStatus.ERROR,
            message=info.message,
            error_kind=info.kind,
            attempts=attempt,
        )
