"""Domain custom resource access.

Reads Domain objects and persists the two things the controller is allowed
to change on them: the finalizer list and ``status.valid``.
"""

import logging

from kubernetes.client import ApiException, CustomObjectsApi

from constants import API_GROUP, API_VERSION, DOMAIN_PLURAL
from models import Domain, EntityKey, EntityStoreError

logger = logging.getLogger(__name__)


class DomainStore:
    """Access to Domain objects through the custom objects API."""

    def __init__(self, custom_api: CustomObjectsApi):
        self._custom_api = custom_api

    def get(self, key: EntityKey) -> Domain | None:
        """Get a Domain by namespace/name, or None if it does not exist.

        Args:
            key: Namespace and name of the Domain

        Returns:
            The observed Domain, or None if not found
        """
        try:
            body = self._custom_api.get_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=key.namespace,
                plural=DOMAIN_PLURAL,
                name=key.name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise EntityStoreError(f"Failed to get Domain {key}: {e.reason}") from e
        return Domain.from_body(body)

    def update_finalizers(self, domain: Domain, finalizers: list[str]) -> None:
        """Replace the Domain's finalizer list.

        The patch carries the observed resourceVersion, so a write based on
        a stale read is rejected with a conflict instead of clobbering.

        Args:
            domain: The Domain as observed
            finalizers: The complete new finalizer list
        """
        metadata: dict[str, object] = {"finalizers": finalizers}
        if domain.resource_version:
            metadata["resourceVersion"] = domain.resource_version

        try:
            self._custom_api.patch_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=domain.namespace,
                plural=DOMAIN_PLURAL,
                name=domain.name,
                body={"metadata": metadata},
            )
        except ApiException as e:
            raise EntityStoreError(
                f"Failed to update finalizers of Domain {domain.key}: {e.reason}"
            ) from e
        domain.finalizers = list(finalizers)

    def update_status(self, domain: Domain, valid: bool) -> None:
        """Write status.valid."""
        try:
            self._custom_api.patch_namespaced_custom_object_status(
                group=API_GROUP,
                version=API_VERSION,
                namespace=domain.namespace,
                plural=DOMAIN_PLURAL,
                name=domain.name,
                body={"status": {"valid": valid}},
            )
        except ApiException as e:
            raise EntityStoreError(
                f"Failed to update status of Domain {domain.key}: {e.reason}"
            ) from e
        domain.valid = valid
