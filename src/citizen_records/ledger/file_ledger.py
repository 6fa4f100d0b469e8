"""File-backed ledger for local deployments.

Same optimistic concurrency semantics as :class:`MemoryLedger`, with committed
state persisted to a JSON document. Commits from separate processes are
serialized with an exclusive lock on a ``.lock`` sidecar file; the state file
is re-read under that lock before validation so a stale in-process view can
never overwrite a newer commit.
"""

import base64
import binascii
import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from citizen_records.ledger.memory import MemoryLedger, MemoryTransaction
from citizen_records.utils.exceptions import StoreError

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1
_LOCK_SUFFIX = ".lock"


@contextmanager
def _locked_file(path: Path) -> Iterator[None]:
    """Hold an exclusive lock on ``path``'s sidecar lock file."""
    lock_path = path.with_suffix(path.suffix + _LOCK_SUFFIX)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a+", encoding="utf-8") as lock_handle:
        fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)


def _atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to a temp file beside ``path`` and rename into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class FileLedger(MemoryLedger):
    """Versioned ledger persisted to a JSON state file.

    Values are stored base64-encoded so raw ``writeKey`` payloads round-trip
    byte for byte.

    Args:
        path: State file location; created on first commit
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def begin(self, attributes: Optional[dict[str, str]] = None) -> MemoryTransaction:
        with self._lock:
            self._load()
        return super().begin(attributes)

    def commit(self, tx: MemoryTransaction) -> None:
        try:
            with _locked_file(self.path):
                with self._lock:
                    self._load()
                    super().commit(tx)
        except OSError as e:
            raise StoreError(
                f"Error storing ledger state at {self.path}: {e}"
            ) from e

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            entries = document["keys"]
            self._state = {
                key: (base64.b64decode(entry["value"], validate=True), int(entry["version"]))
                for key, entry in entries.items()
            }
        except (OSError, ValueError, KeyError, TypeError, binascii.Error) as e:
            raise StoreError(
                f"Unable to read ledger state file {self.path}: {e}"
            ) from e

    def _persist(self) -> None:
        document = {
            "format": STATE_FORMAT_VERSION,
            "keys": {
                key: {
                    "version": version,
                    "value": base64.b64encode(value).decode("ascii"),
                }
                for key, (value, version) in sorted(self._state.items())
            },
        }
        _atomic_write_text(self.path, json.dumps(document, indent=2))
        logger.debug("Ledger state written to %s", self.path)
