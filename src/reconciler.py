"""Reconciliation loop for Domain resources.

One call to ``Reconciler.reconcile`` converges one Domain towards its
declared state:

1. fetch the Domain (gone means nothing to do)
2. make sure our finalizer is persisted before touching anything external
3. on deletion, clean up the record and the namespace, then drop the finalizer
4. reject Domains whose name does not match spec.domainId
5. reject invalid Domains
6. create or overwrite the database record
7. make sure the namespace exists
8. report status.valid

Every step is idempotent, and a call after a partial failure is no
different from a fresh one. Nothing is retried here: any exception raised
by ``reconcile`` is retryable, and the caller decides when to call again.
Calls for the same Domain must not run concurrently.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from finalizer import FinalizerState, add_finalizer, finalizer_state, remove_finalizer
from models import Domain, DomainRecord, EntityKey, ReconcileResult, validate_domain

logger = logging.getLogger(__name__)


# =============================================================================
# Collaborator contracts
# =============================================================================


class EntityStore(Protocol):
    def get(self, key: EntityKey) -> Domain | None: ...

    def update_finalizers(self, domain: Domain, finalizers: list[str]) -> None: ...

    def update_status(self, domain: Domain, valid: bool) -> None: ...


class RecordStore(Protocol):
    def get(self, domain_id: str) -> DomainRecord | None: ...

    def create(self, domain_id: str, environments: list[str]) -> None: ...

    def update(self, domain_id: str, environments: list[str]) -> None: ...

    def delete(self, domain_id: str) -> None: ...


class NamespaceLifecycle(Protocol):
    def ownership_labels(self, domain_id: str) -> dict[str, str]: ...

    def get(self, name: str) -> Any | None: ...

    def create(self, name: str, labels: dict[str, str]) -> None: ...

    def delete(self, name: str) -> None: ...


# =============================================================================
# Reconciler
# =============================================================================


class Reconciler:
    """Control loop keeping Domains, their records and namespaces in sync."""

    def __init__(
        self,
        entities: EntityStore,
        records: RecordStore,
        namespaces: NamespaceLifecycle,
        validator: Callable[[Domain], list[str]] = validate_domain,
    ) -> None:
        self.entities = entities
        self.records = records
        self.namespaces = namespaces
        self.validator = validator

    def reconcile(self, key: EntityKey) -> ReconcileResult:
        """Run one reconciliation pass for the Domain at key."""
        domain = self.entities.get(key)
        if domain is None:
            logger.debug("Domain %s not found, nothing to do", key)
            return ReconcileResult()

        logger.info(
            "Processing domain %s (domainId=%s, environments=%s)",
            key,
            domain.domain_id,
            domain.environments,
        )

        state = finalizer_state(domain)

        if state is FinalizerState.NO_FINALIZER:
            logger.info("Adding finalizer to domain %s", key)
            self.entities.update_finalizers(domain, add_finalizer(domain.finalizers))
            # The write produces a new event; the rest happens on that pass
            return ReconcileResult(requeue=True)

        if state is FinalizerState.TERMINATING:
            # Records and namespaces are only created while name == domainId,
            # so the name is the ID they were created under.
            # Cleanup errors propagate and leave the finalizer in place.
            self.finalize(domain.name)
            self.entities.update_finalizers(
                domain, remove_finalizer(domain.finalizers)
            )
            logger.info("Removed finalizer from domain %s", key)
            return ReconcileResult()

        if state is FinalizerState.REMOVED:
            return ReconcileResult()

        if key.name != domain.domain_id:
            logger.warning(
                "Resource name mismatch for domain %s: expected %r, found %r",
                key,
                domain.domain_id,
                key.name,
            )
            self.report_status(domain, False)
            return ReconcileResult()

        problems = self.validator(domain)
        if problems:
            logger.warning(
                "Domain %s validation failed: %s", key, "; ".join(problems)
            )
            self.report_status(domain, False)
            return ReconcileResult()

        self.sync_record(domain)
        self.ensure_namespace(domain)
        self.report_status(domain, True)
        return ReconcileResult()

    def finalize(self, domain_id: str) -> None:
        """Remove everything a domain owns outside the cluster object.

        The record goes first, then the namespace. Both deletes treat an
        already-missing target as success, so the whole sequence can be
        repeated from the start after any failure.
        """
        logger.info("Finalizing domain %s", domain_id)
        self.records.delete(domain_id)
        self.namespaces.delete(domain_id)
        logger.info("Successfully finalized domain %s", domain_id)

    def sync_record(self, domain: Domain) -> None:
        """Create the domain's record, or overwrite its environments."""
        existing = self.records.get(domain.domain_id)
        if existing is None:
            self.records.create(domain.domain_id, domain.environments)
        else:
            # Last writer wins; there is no version column to compare against
            self.records.update(domain.domain_id, domain.environments)

    def ensure_namespace(self, domain: Domain) -> None:
        """Create the domain's namespace if it is missing.

        An existing namespace is left exactly as it is.
        """
        if self.namespaces.get(domain.domain_id) is not None:
            logger.debug("Namespace %s already exists", domain.domain_id)
            return
        self.namespaces.create(
            domain.domain_id, self.namespaces.ownership_labels(domain.domain_id)
        )

    def report_status(self, domain: Domain, valid: bool) -> None:
        """Persist status.valid. A failed write raises."""
        self.entities.update_status(domain, valid)
        logger.info("Domain %s status updated to valid=%s", domain.key, valid)
