"""Flask application exposing the ledger host over HTTP."""

import logging
import signal
import sys
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, Response, jsonify, request

from citizen_records import __version__
from citizen_records.config.schema import Config
from citizen_records.host.executor import LedgerHost
from citizen_records.identity.resolver import ROLE_ATTRIBUTE, USERNAME_ATTRIBUTE
from citizen_records.models.responses import InvocationResult
from citizen_records.router.operations import InvocationMode
from citizen_records.utils.exceptions import ErrorKind

# Caller attributes arrive as request headers set by the authenticating gateway
USERNAME_HEADER = "X-Caller-Username"
ROLE_HEADER = "X-Caller-Role"

STATUS_CODES = {
    ErrorKind.ARGUMENT.value: 400,
    ErrorKind.UNKNOWN_OPERATION.value: 400,
    ErrorKind.IDENTITY.value: 401,
    ErrorKind.PERMISSION_DENIED.value: 403,
    ErrorKind.NOT_FOUND.value: 404,
    ErrorKind.DUPLICATE_ID.value: 409,
    ErrorKind.CONFLICT.value: 409,
    ErrorKind.CORRUPT_RECORD.value: 422,
    ErrorKind.STORE.value: 500,
}

# Server state tracking
_server_start_time: Optional[datetime] = None
_request_count: int = 0
_host: Optional[LedgerHost] = None

app = Flask(__name__)

logger = logging.getLogger(__name__)


@app.before_request
def log_request():
    """Log all incoming requests."""
    global _request_count
    _request_count += 1

    logger.info(
        f"Request #{_request_count}: {request.method} {request.path} "
        f"(Content-Length: {request.content_length or 0})"
    )


@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.

    Returns JSON with server status, version, record variant, endpoints,
    uptime, request count, and timestamp.
    """
    uptime_seconds = 0
    if _server_start_time:
        uptime_seconds = int((datetime.now(timezone.utc) - _server_start_time).total_seconds())

    health_response = {
        "status": "healthy" if _host is not None else "uninitialized",
        "version": __version__,
        "variant": _host.variant.value if _host is not None else None,
        "endpoints": ["/health", "/invoke", "/query"],
        "uptime_seconds": uptime_seconds,
        "request_count": _request_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return jsonify(health_response), 200


@app.route("/invoke", methods=["POST"])
def invoke_endpoint():
    """Execute a mutating invocation."""
    return _handle(InvocationMode.INVOKE)


@app.route("/query", methods=["POST"])
def query_endpoint():
    """Execute a read-only query."""
    return _handle(InvocationMode.QUERY)


def _handle(mode: InvocationMode) -> tuple[Response, int]:
    if _host is None:
        return _error_response("Ledger host not initialized", ErrorKind.STORE.value, 503)

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", ErrorKind.ARGUMENT.value, 400)

    function = body.get("function")
    args = body.get("args", [])
    if not isinstance(function, str) or not function:
        return _error_response("Missing 'function'", ErrorKind.ARGUMENT.value, 400)
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        return _error_response("'args' must be a list of strings", ErrorKind.ARGUMENT.value, 400)

    attributes = {}
    username = request.headers.get(USERNAME_HEADER)
    role = request.headers.get(ROLE_HEADER)
    if username is not None:
        attributes[USERNAME_ATTRIBUTE] = username
    if role is not None:
        attributes[ROLE_ATTRIBUTE] = role

    result = _host.execute(function, args, attributes, mode)
    return jsonify(result.to_dict()), status_code_for(result)


def status_code_for(result: InvocationResult) -> int:
    """Map an invocation result to an HTTP status code.

    Args:
        result: Invocation result from the ledger host

    Returns:
        200 on success (including NOT_UNIQUE), otherwise the code for the
        result's error kind
    """
    if result.is_success:
        return 200
    return STATUS_CODES.get(result.error_kind or "", 500)


def _error_response(message: str, kind: str, status: int) -> tuple[Response, int]:
    logger.warning(f"Rejected request: {message}")
    return jsonify({"status": "ERROR", "message": message, "error_kind": kind}), status


@app.errorhandler(404)
def not_found(error):
    """Handle unknown routes with a JSON error."""
    return _error_response("Not Found", ErrorKind.ARGUMENT.value, 404)


@app.errorhandler(500)
def internal_error(error):
    """Handle 500 Internal Server errors with a JSON error."""
    return _error_response("Internal Server Error", ErrorKind.STORE.value, 500)


def setup_graceful_shutdown():
    """Setup graceful shutdown handlers for SIGTERM and SIGINT.

    Note: Signal handlers can only be registered in the main thread.
    In test scenarios or when running in background threads, this will
    log a warning but continue gracefully.
    """
    def shutdown_handler(signum, frame):
        logger.info(f"Received shutdown signal ({signum}), shutting down")
        sys.exit(0)

    try:
        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
    except ValueError as e:
        logger.warning(
            f"Could not register signal handlers (not in main thread): {e}. "
            f"Graceful shutdown via signals will not be available."
        )


def initialize_app(host: LedgerHost) -> Flask:
    """Attach a ledger host to the Flask app.

    Args:
        host: Ledger host serving invocations

    Returns:
        The module-level Flask app
    """
    global _host, _server_start_time, _request_count
    _host = host
    _server_start_time = datetime.now(timezone.utc)
    _request_count = 0
    logger.info(f"Ledger server initialized (variant={host.variant.value})")
    return app


def run_server(config: Config, host: Optional[LedgerHost] = None, debug: bool = False) -> None:
    """Run the Flask ledger server.

    Args:
        config: Validated configuration (server section supplies host/port)
        host: Ledger host to serve; built from config if not provided
        debug: Enable Flask debug mode
    """
    if host is None:
        host = LedgerHost.from_config(config)
        host.bootstrap()

    initialize_app(host)
    setup_graceful_shutdown()

    logger.info(f"Starting ledger server on http://{config.server.host}:{config.server.port}")
    app.run(
        host=config.server.host,
        port=config.server.port,
        debug=debug,
        use_reloader=False,
    )
