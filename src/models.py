"""Domain models for the domain operator.

This module defines typed data structures for the Domain custom resource,
the database record mirroring it, and the operator's exception hierarchy.
"""

import re
from dataclasses import dataclass, field
from typing import Any, NamedTuple, NotRequired, TypedDict


# =============================================================================
# TypedDicts for CRD spec (external data from Kubernetes)
# =============================================================================


class DomainSpec(TypedDict):
    """Domain CRD spec."""

    domainId: str
    environments: list[str]


class DomainStatusSpec(TypedDict):
    """Domain CRD status."""

    valid: NotRequired[bool]


# =============================================================================
# Dataclasses for internal state
# =============================================================================


class EntityKey(NamedTuple):
    """Dispatch key identifying one Domain resource."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class Domain:
    """A Domain resource as observed in the cluster."""

    name: str
    namespace: str
    domain_id: str = ""
    environments: list[str] = field(default_factory=list)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    resource_version: str | None = None
    valid: bool | None = None

    @property
    def key(self) -> EntityKey:
        return EntityKey(self.namespace, self.name)

    @property
    def is_deleting(self) -> bool:
        """Whether deletion intent has been observed."""
        return bool(self.deletion_timestamp)

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "Domain":
        """Create from a Kubernetes object dict."""
        metadata = body.get("metadata") or {}
        spec = body.get("spec") or {}
        status = body.get("status") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            domain_id=spec.get("domainId") or "",
            environments=list(spec.get("environments") or []),
            finalizers=list(metadata.get("finalizers") or []),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            resource_version=metadata.get("resourceVersion"),
            valid=status.get("valid"),
        )


@dataclass(frozen=True)
class DomainRecord:
    """Row of the domains table."""

    domain_id: str
    environments: list[str]


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one successful reconciliation.

    A failed reconciliation raises instead of returning.
    """

    requeue: bool = False


# =============================================================================
# Validation
# =============================================================================

# Domain IDs become namespace names, so they must be DNS-1123 labels
_DNS_LABEL_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_DNS_LABEL_MAX_LENGTH = 63


def is_valid_domain_id(value: str) -> bool:
    """Check if a string can be used as a domain ID (and namespace name).

    Mixed-case IDs such as "teamA" are rejected on purpose, since namespace
    names must be lower-case DNS-1123 labels.
    """
    if not value or len(value) > _DNS_LABEL_MAX_LENGTH:
        return False
    return _DNS_LABEL_RE.match(value) is not None


def validate_domain(domain: Domain) -> list[str]:
    """Validate a Domain's declared state.

    Returns:
        List of problems found; empty when the domain is valid.
    """
    problems: list[str] = []

    if not domain.domain_id:
        problems.append("spec.domainId is required")
    elif not is_valid_domain_id(domain.domain_id):
        problems.append(
            f"spec.domainId {domain.domain_id!r} is not a valid DNS-1123 label"
        )

    if not domain.environments:
        problems.append("spec.environments must not be empty")
    elif not all(isinstance(env, str) and env for env in domain.environments):
        problems.append("spec.environments entries must be non-empty strings")

    return problems


# =============================================================================
# Exceptions
# =============================================================================


class OperatorError(Exception):
    """Base exception for operator errors.

    Every OperatorError is retryable: the caller re-runs the whole
    reconciliation.
    """

    pass


class RecordStoreError(OperatorError):
    """Error talking to the domains database."""

    pass


class NamespaceError(OperatorError):
    """Error managing a domain's namespace."""

    pass


class EntityStoreError(OperatorError):
    """Error reading or writing the Domain resource itself."""

    pass


class ConfigurationError(OperatorError):
    """Invalid or missing configuration."""

    pass
