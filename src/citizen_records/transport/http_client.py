"""HTTP client for a remote ledger host.

This module provides a pooled ``requests`` session with retry logic and a thin
client that sends invocations to the ``/invoke`` and ``/query`` endpoints of
``citizen_records.server``.
"""

import logging
from threading import Lock
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from citizen_records.config.schema import ClientConfig
from citizen_records.models.responses import InvocationResult, InvocationStatus
from citizen_records.router.operations import InvocationMode
from citizen_records.utils.exceptions import TransportError

logger = logging.getLogger(__name__)

USERNAME_HEADER = "X-Caller-Username"
ROLE_HEADER = "X-Caller-Role"


class LedgerClient:
    """Client for a remote ledger host.

    The session is created lazily and reused. Thread-safe for concurrent use.
    Connection failures and 5xx answers from the gateway are retried with
    exponential backoff; service errors come back as ERROR results.

    Example:
        >>> client = LedgerClient(ClientConfig(base_url="http://127.0.0.1:8080"))
        >>> result = client.query("heartbeat", [], user="alice", role="person")
        >>> result.payload
        b'Alive!!!'
        >>> client.close()
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        self.config = config or ClientConfig()
        self._session: Optional[requests.Session] = None
        self._lock = Lock()

    def get_session(self) -> requests.Session:
        """Get or create the configured HTTP session."""
        with self._lock:
            if self._session is None:
                self._session = self._create_session()
            return self._session

    def _create_session(self) -> requests.Session:
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=[502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)

        session = requests.Session()
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        logger.debug(
            "Created HTTP session for %s with retry_count=%d",
            self.config.base_url,
            self.config.max_retries,
        )
        return session

    def close(self) -> None:
        """Close the session and release connections."""
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None

    def __enter__(self) -> "LedgerClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def invoke(
        self, function: str, args: list[str], *, user: str, role: str
    ) -> InvocationResult:
        """Send a mutating invocation."""
        return self.execute(function, args, InvocationMode.INVOKE, user=user, role=role)

    def query(
        self, function: str, args: list[str], *, user: str, role: str
    ) -> InvocationResult:
        """Send a read-only query."""
        return self.execute(function, args, InvocationMode.QUERY, user=user, role=role)

    def execute(
        self,
        function: str,
        args: list[str],
        mode: InvocationMode,
        *,
        user: str,
        role: str,
    ) -> InvocationResult:
        """Send one invocation to the remote host.

        Args:
            function: Invocation name
            args: Positional string arguments
            mode: Invoke or query
            user: Caller username attribute
            role: Caller role attribute

        Returns:
            InvocationResult decoded from the host's JSON answer

        Raises:
            TransportError: If the host is unreachable or answers with
                something other than an invocation result
        """
        url = f"{self.config.base_url}/{mode.value}"
        headers = {USERNAME_HEADER: user, ROLE_HEADER: role}
        logger.debug(f"POST {url} function={function} args={len(args)}")

        try:
            response = self.get_session().post(
                url,
                json={"function": function, "args": list(args)},
                headers=headers,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Ledger host unreachable at {url}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Ledger host returned non-JSON response (HTTP {response.status_code})"
            ) from e

        return result_from_dict(function, body, response.status_code)

    def health(self) -> dict:
        """Fetch the host's health document.

        Raises:
            TransportError: If the host is unreachable or unhealthy
        """
        url = f"{self.config.base_url}/health"
        try:
            response = self.get_session().get(url, timeout=self.config.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise TransportError(f"Health check failed for {url}: {e}") from e


def result_from_dict(function: str, body: dict, http_status: int) -> InvocationResult:
    """Rebuild an InvocationResult from the host's JSON body.

    Raises:
        TransportError: If the body is not an invocation result
    """
    if not isinstance(body, dict) or "status" not in body:
        raise TransportError(f"Unexpected response from ledger host (HTTP {http_status})")

    try:
        status = InvocationStatus(body["status"])
    except ValueError as e:
        raise TransportError(f"Unknown invocation status: {body['status']}") from e

    payload = body.get("payload") or ""
    return InvocationResult(
        function=body.get("function", function),
        status=status,
        payload=payload.encode("utf-8"),
        message=body.get("message"),
        error_kind=body.get("error_kind"),
        attempts=body.get("attempts", 1),
    )
