"""Namespace lifecycle for domains.

Each domain owns one cluster namespace named after its domain ID. The
namespace is created once and never modified afterwards; only its
existence is ensured.
"""

import logging

from kubernetes.client import ApiException, CoreV1Api, V1Namespace, V1ObjectMeta

from constants import DEFAULT_OPERATOR_NAME, DOMAIN_LABEL, MANAGED_BY_LABEL
from models import NamespaceError

logger = logging.getLogger(__name__)


class NamespaceManager:
    """Get/create/delete of domain namespaces."""

    def __init__(self, core_api: CoreV1Api, operator_name: str = DEFAULT_OPERATOR_NAME):
        self._core_api = core_api
        self.operator_name = operator_name

    def ownership_labels(self, domain_id: str) -> dict[str, str]:
        """Labels marking a namespace as owned by a domain."""
        return {
            DOMAIN_LABEL: domain_id,
            MANAGED_BY_LABEL: self.operator_name,
        }

    def get(self, name: str) -> V1Namespace | None:
        """Get a namespace, or None if it does not exist."""
        try:
            return self._core_api.read_namespace(name)
        except ApiException as e:
            if e.status == 404:
                return None
            raise NamespaceError(f"Failed to get namespace {name}: {e.reason}") from e

    def create(self, name: str, labels: dict[str, str]) -> None:
        body = V1Namespace(metadata=V1ObjectMeta(name=name, labels=dict(labels)))
        try:
            self._core_api.create_namespace(body)
        except ApiException as e:
            raise NamespaceError(
                f"Failed to create namespace {name}: {e.reason}"
            ) from e
        logger.info("Created namespace %s", name)

    def delete(self, name: str) -> None:
        """Delete a namespace. A namespace that is already gone is fine."""
        try:
            self._core_api.delete_namespace(name)
        except ApiException as e:
            if e.status == 404:
                logger.info("Namespace %s does not exist", name)
                return
            raise NamespaceError(
                f"Failed to delete namespace {name}: {e.reason}"
            ) from e
        logger.info("Deleted namespace %s", name)
