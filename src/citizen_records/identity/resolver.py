"""Caller identity resolution.

Reads the attested ``username`` and ``role`` attributes from the ledger
transaction. How those attributes are attested is the ledger's business; this
module only consumes the resolved pair.
"""

import logging

from citizen_records.ledger.base import LedgerTransaction, MissingAttributeError
from citizen_records.policy.access import AccessPolicy, Caller
from citizen_records.utils.exceptions import IdentityError

logger = logging.getLogger(__name__)

USERNAME_ATTRIBUTE = "username"
ROLE_ATTRIBUTE = "role"


class IdentityResolver:
    """Resolve the caller of the current invocation.

    Args:
        tx: Ledger transaction of the invocation
        policy: Access policy used to map the role attribute
    """

    def __init__(self, tx: LedgerTransaction, policy: AccessPolicy) -> None:
        self.tx = tx
        self.policy = policy

    def resolve(self) -> Caller:
        """Return the resolved caller.

        Raises:
            IdentityError: If either attribute is absent, unreadable or empty
        """
        username = self._read_attribute(USERNAME_ATTRIBUTE)
        role_attribute = self._read_attribute(ROLE_ATTRIBUTE)
        caller = self.policy.caller(username, role_attribute)
        if caller.role is None:
            logger.debug(
                "Caller %s has unmapped role attribute '%s'", username, role_attribute
            )
        return caller

    def _read_attribute(self, name: str) -> str:
        try:
            value = self.tx.get_caller_attribute(name)
        except MissingAttributeError as e:
            raise IdentityError(
                f"Couldn't get attribute '{name}'. Error: {e}"
            ) from e
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise IdentityError(
                    f"Couldn't get attribute '{name}'. Error: not UTF-8"
                ) from e
        if not isinstance(value, str) or not value:
            raise IdentityError(f"Couldn't get attribute '{name}'. Error: empty value")
        return value
