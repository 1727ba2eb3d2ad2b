"""Shared fixtures: in-memory stand-ins for the systems a Domain touches."""

from typing import Any

import pytest

from constants import DEFAULT_OPERATOR_NAME, DOMAIN_FINALIZER, DOMAIN_LABEL, MANAGED_BY_LABEL
from models import Domain, DomainRecord, EntityKey, EntityStoreError, NamespaceError, RecordStoreError
from reconciler import Reconciler


class FakeEntityStore:
    """Domains kept in a dict, with writes recorded."""

    def __init__(self) -> None:
        self.domains: dict[EntityKey, Domain] = {}
        self.finalizer_writes: list[tuple[EntityKey, list[str]]] = []
        self.status_writes: list[tuple[EntityKey, bool]] = []
        self.fail_status = False
        self.fail_finalizers = False

    def add(
        self,
        domain_id: str,
        environments: list[str],
        name: str | None = None,
        namespace: str = "default",
        finalizers: list[str] | None = None,
        deleting: bool = False,
    ) -> EntityKey:
        domain = Domain(
            name=name or domain_id,
            namespace=namespace,
            domain_id=domain_id,
            environments=list(environments),
            finalizers=list(finalizers or []),
            deletion_timestamp="2024-01-01T00:00:00Z" if deleting else None,
            resource_version="1",
        )
        self.domains[domain.key] = domain
        return domain.key

    def get(self, key: EntityKey) -> Domain | None:
        domain = self.domains.get(key)
        if domain is None:
            return None
        # Hand out a copy so the reconciler only sees what was persisted
        return Domain(
            name=domain.name,
            namespace=domain.namespace,
            domain_id=domain.domain_id,
            environments=list(domain.environments),
            finalizers=list(domain.finalizers),
            deletion_timestamp=domain.deletion_timestamp,
            resource_version=domain.resource_version,
            valid=domain.valid,
        )

    def update_finalizers(self, domain: Domain, finalizers: list[str]) -> None:
        if self.fail_finalizers:
            raise EntityStoreError("conflict")
        self.finalizer_writes.append((domain.key, list(finalizers)))
        stored = self.domains[domain.key]
        if stored.is_deleting and not finalizers:
            # The API server drops the object once no finalizer is left
            del self.domains[domain.key]
            return
        stored.finalizers = list(finalizers)
        domain.finalizers = list(finalizers)

    def update_status(self, domain: Domain, valid: bool) -> None:
        if self.fail_status:
            raise EntityStoreError("status write failed")
        self.status_writes.append((domain.key, valid))
        self.domains[domain.key].valid = valid
        domain.valid = valid


class FakeRecordStore:
    """Records in a dict; every call is logged as (operation, domain_id, ...)."""

    def __init__(self) -> None:
        self.records: dict[str, list[str]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RecordStoreError(f"{operation} failed")

    def get(self, domain_id: str) -> DomainRecord | None:
        self.calls.append(("get", domain_id))
        self._check("get")
        if domain_id not in self.records:
            return None
        return DomainRecord(domain_id, list(self.records[domain_id]))

    def create(self, domain_id: str, environments: list[str]) -> None:
        self.calls.append(("create", domain_id, list(environments)))
        self._check("create")
        assert domain_id not in self.records, "duplicate record"
        self.records[domain_id] = list(environments)

    def update(self, domain_id: str, environments: list[str]) -> None:
        self.calls.append(("update", domain_id, list(environments)))
        self._check("update")
        if domain_id in self.records:
            self.records[domain_id] = list(environments)

    def delete(self, domain_id: str) -> None:
        self.calls.append(("delete", domain_id))
        self._check("delete")
        self.records.pop(domain_id, None)

    @property
    def writes(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] != "get"]


class FakeNamespaces:
    """Namespaces in a dict of name -> labels."""

    def __init__(self, operator_name: str = DEFAULT_OPERATOR_NAME) -> None:
        self.operator_name = operator_name
        self.namespaces: dict[str, dict[str, str]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise NamespaceError(f"{operation} failed")

    def ownership_labels(self, domain_id: str) -> dict[str, str]:
        return {DOMAIN_LABEL: domain_id, MANAGED_BY_LABEL: self.operator_name}

    def get(self, name: str) -> dict[str, str] | None:
        self.calls.append(("get", name))
        self._check("get")
        return self.namespaces.get(name)

    def create(self, name: str, labels: dict[str, str]) -> None:
        self.calls.append(("create", name, dict(labels)))
        self._check("create")
        assert name not in self.namespaces, "namespace already exists"
        self.namespaces[name] = dict(labels)

    def delete(self, name: str) -> None:
        self.calls.append(("delete", name))
        self._check("delete")
        self.namespaces.pop(name, None)

    @property
    def writes(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] != "get"]


@pytest.fixture
def entities() -> FakeEntityStore:
    return FakeEntityStore()


@pytest.fixture
def records() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def namespaces() -> FakeNamespaces:
    return FakeNamespaces()


@pytest.fixture
def reconciler(
    entities: FakeEntityStore, records: FakeRecordStore, namespaces: FakeNamespaces
) -> Reconciler:
    return Reconciler(entities=entities, records=records, namespaces=namespaces)


@pytest.fixture
def finalizer() -> str:
    return DOMAIN_FINALIZER
