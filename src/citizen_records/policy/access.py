"""Role-based access policy.

A static table maps each operation to the one fixed set of roles allowed to
perform it. Enforcement is a single membership check; there are no row-level
or field-level exceptions. Attestation role strings are mapped to abstract
roles through the injected ``RolesConfig``, so deployments can rename roles
without touching the table.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from citizen_records.config.schema import RolesConfig
from citizen_records.utils.exceptions import PermissionDenied

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Abstract access-control roles."""

    SELF = "self"
    DOMAIN_USER = "domain-user"
    DOMAIN_ADMIN = "domain-admin"
    REGISTRY_ADMIN = "registry-admin"


class Operation(str, Enum):
    """Operations exposed by the record service."""

    CREATE = "create"
    SET_EXTERNAL_ID = "setExternalID"
    SET_NAME = "setName"
    SET_BLOOD_GROUP = "setBloodGroup"
    SET_ADDRESS = "setAddress"
    ADD_SUB_RECORD = "addSubRecord"
    CLOSE_SUB_RECORD = "closeSubRecord"
    GET_REDACTED_ENTITY = "getRedactedEntity"
    GET_FULL_ENTITY = "getFullEntity"
    LIST_ALL = "listAll"
    CHECK_UNIQUE = "checkUnique"
    WRITE_KEY = "writeKey"
    READ_KEY = "readKey"
    GET_CREDENTIAL = "getCredential"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class Caller:
    """Resolved caller of an invocation.

    Attributes:
        name: Attested username
        role_attribute: Attested role string as supplied by the ledger
        role: Abstract role, or None when the role string is not mapped
    """

    name: str
    role_attribute: str
    role: Optional[Role]


# Operations open to any resolved caller, whatever its role
OPEN_OPERATIONS: frozenset[Operation] = frozenset(
    {
        Operation.CHECK_UNIQUE,
        Operation.READ_KEY,
        Operation.GET_CREDENTIAL,
        Operation.HEARTBEAT,
    }
)

ACCESS_MATRIX: dict[Operation, frozenset[Role]] = {
    Operation.CREATE: frozenset({Role.REGISTRY_ADMIN}),
    Operation.SET_EXTERNAL_ID: frozenset({Role.REGISTRY_ADMIN}),
    Operation.SET_NAME: frozenset({Role.REGISTRY_ADMIN, Role.SELF}),
    Operation.SET_BLOOD_GROUP: frozenset({Role.DOMAIN_ADMIN, Role.SELF}),
    Operation.SET_ADDRESS: frozenset({Role.REGISTRY_ADMIN, Role.SELF}),
    Operation.ADD_SUB_RECORD: frozenset({Role.DOMAIN_ADMIN, Role.DOMAIN_USER}),
    Operation.CLOSE_SUB_RECORD: frozenset({Role.DOMAIN_ADMIN, Role.DOMAIN_USER}),
    # Reads are self only; the registry authority cannot read entities
    Operation.GET_REDACTED_ENTITY: frozenset({Role.SELF}),
    Operation.GET_FULL_ENTITY: frozenset({Role.SELF}),
    Operation.LIST_ALL: frozenset({Role.SELF}),
    Operation.WRITE_KEY: frozenset({Role.REGISTRY_ADMIN}),
}


class AccessPolicy:
    """Membership check of a caller's role against the access matrix.

    Args:
        roles: Attestation role strings for each abstract role

    Example:
        >>> policy = AccessPolicy(RolesConfig())
        >>> caller = policy.caller("alice", "govt_admin")
        >>> policy.check(Operation.CREATE, caller)
    """

    def __init__(self, roles: RolesConfig) -> None:
        self._by_attribute: dict[str, Role] = {
            roles.self_role: Role.SELF,
            roles.domain_user: Role.DOMAIN_USER,
            roles.domain_admin: Role.DOMAIN_ADMIN,
            roles.registry_admin: Role.REGISTRY_ADMIN,
        }

    def role_for(self, role_attribute: str) -> Optional[Role]:
        """Map an attestation role string to its abstract role."""
        return self._by_attribute.get(role_attribute)

    def caller(self, name: str, role_attribute: str) -> Caller:
        """Build a Caller from attested attributes."""
        return Caller(
            name=name,
            role_attribute=role_attribute,
            role=self.role_for(role_attribute),
        )

    def allowed_roles(self, operation: Operation) -> frozenset[Role]:
        """Return the roles allowed to perform ``operation``."""
        if operation in OPEN_OPERATIONS:
            return frozenset(Role)
        return ACCESS_MATRIX[operation]

    def is_allowed(self, operation: Operation, caller: Caller) -> bool:
        if operation in OPEN_OPERATIONS:
            return True
        return caller.role in ACCESS_MATRIX[operation]

    def check(self, operation: Operation, caller: Caller) -> None:
        """Enforce the access matrix.

        Raises:
            PermissionDenied: If the caller's role is not allowed
        """
        if not self.is_allowed(operation, caller):
            logger.info(
                "Denied %s to %s (role %s)",
                operation.value,
                caller.name,
                caller.role_attribute,
            )
            raise PermissionDenied(operation.value, caller.role_attribute)
