"""Kopf handlers for the Domain CRD.

Kopf is the dispatch layer: it watches Domains, serializes work per object
and retries failed reconciliations with a delay. Every handler below runs
the same full reconciliation; which event triggered it does not matter.

kopf and the reconciler share one finalizer name. The non-optional delete
handler makes kopf put the finalizer on every Domain and route a deleting
Domain to `delete_domain`, where the reconciler finalizes and removes it.
"""

import logging
import os
import sys
import time
from pathlib import Path
from typing import Any

# Add src directory to path for imports when run as script by Kopf
_src_dir = Path(__file__).parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import kopf
from prometheus_client import start_http_server

from constants import (
    API_GROUP,
    API_VERSION,
    DEFAULT_OPERATOR_NAME,
    DOMAIN_FINALIZER,
    DOMAIN_PLURAL,
)
from metrics import (
    RECONCILE_DURATION,
    RECONCILE_IN_PROGRESS,
    RECONCILE_TOTAL,
    init_metrics,
    set_operator_info,
)
from models import EntityKey, OperatorError
from state import state
from utils import get_env_int

logger = logging.getLogger(__name__)

# Operator version
OPERATOR_VERSION = "0.1.0"

# How often a pass that asks to be re-run (finalizer just added) is repeated
# before handing control back to kopf
MAX_IMMEDIATE_REQUEUES = 3


def _retry_delay() -> int:
    return get_env_int("RETRY_DELAY_SECONDS", 30)


def reconcile_domain(operation: str, namespace: str, name: str, body: Any) -> None:
    """Run the reconciler for one Domain and translate the outcome for kopf.

    Raises:
        kopf.TemporaryError: If reconciliation failed; kopf calls again later
    """
    key = EntityKey(namespace, name)
    start_time = time.monotonic()
    RECONCILE_IN_PROGRESS.labels(resource="Domain").inc()

    try:
        reconciler = state.get_reconciler()
        result = reconciler.reconcile(key)

        # A persisted finalizer starts a new pass, like the watch event would
        requeues = 0
        while result.requeue and requeues < MAX_IMMEDIATE_REQUEUES:
            requeues += 1
            result = reconciler.reconcile(key)

        if result.requeue:
            raise kopf.TemporaryError(
                f"Domain {key} asked to be reconciled again", delay=1
            )

        duration = time.monotonic() - start_time
        RECONCILE_TOTAL.labels(
            resource="Domain", operation=operation, status="success"
        ).inc()
        RECONCILE_DURATION.labels(resource="Domain", operation=operation).observe(
            duration
        )
        logger.debug("Reconciled Domain %s in %.3fs", key, duration)

    except OperatorError as e:
        logger.error("Failed to reconcile Domain %s: %s", key, e)
        RECONCILE_TOTAL.labels(
            resource="Domain", operation=operation, status="error"
        ).inc()
        kopf.warn(body, reason="ReconcileFailed", message=str(e)[:200])
        raise kopf.TemporaryError(
            f"Reconciliation failed: {e}", delay=_retry_delay()
        ) from e
    finally:
        RECONCILE_IN_PROGRESS.labels(resource="Domain").dec()


def configure_settings(settings: kopf.OperatorSettings) -> None:
    """Apply the kopf settings the Domain handlers rely on."""
    # Reduce logging noise
    settings.posting.level = logging.WARNING
    # The marker kopf adds is the one the reconciler finalizes and removes
    settings.persistence.finalizer = DOMAIN_FINALIZER
    # Keep kopf's bookkeeping out of the Domain status, which only has `valid`
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=API_GROUP
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=API_GROUP
    )


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure operator settings on startup."""
    configure_settings(settings)

    # Start Prometheus metrics server
    metrics_port = int(os.environ.get("METRICS_PORT", "9090"))
    try:
        start_http_server(metrics_port)
        logger.info("Prometheus metrics server started on port %d", metrics_port)
    except OSError as e:
        logger.warning("Failed to start metrics server on port %d: %s", metrics_port, e)

    operator_name = os.environ.get("OPERATOR_NAME", "") or DEFAULT_OPERATOR_NAME
    init_metrics()
    set_operator_info(OPERATOR_VERSION, operator_name)

    try:
        state.get_record_store().ensure_schema()
    except OperatorError as e:
        raise kopf.TemporaryError(f"Database not ready: {e}", delay=_retry_delay()) from e

    logger.info("Domain operator started (version %s)", OPERATOR_VERSION)


@kopf.on.cleanup()
def cleanup(**_: Any) -> None:
    """Clean up resources on operator shutdown."""
    logger.info("Domain operator shutting down")
    state.close()


@kopf.on.resume(API_GROUP, API_VERSION, DOMAIN_PLURAL)
def resume_domain(namespace: str, name: str, body: kopf.Body, **_: Any) -> None:
    """Handle Domains found when the operator starts."""
    reconcile_domain("resume", namespace, name, body)


@kopf.on.create(API_GROUP, API_VERSION, DOMAIN_PLURAL)
def create_domain(namespace: str, name: str, body: kopf.Body, **_: Any) -> None:
    """Handle Domain creation."""
    logger.info("Creating Domain: %s/%s", namespace, name)
    reconcile_domain("create", namespace, name, body)


@kopf.on.update(API_GROUP, API_VERSION, DOMAIN_PLURAL)
def update_domain(namespace: str, name: str, body: kopf.Body, **_: Any) -> None:
    """Handle Domain updates."""
    logger.info("Updating Domain: %s/%s", namespace, name)
    reconcile_domain("update", namespace, name, body)


@kopf.on.delete(API_GROUP, API_VERSION, DOMAIN_PLURAL)
def delete_domain(namespace: str, name: str, body: kopf.Body, **_: Any) -> None:
    """Handle Domain deletion (the reconciler runs the finalizer)."""
    logger.info("Deleting Domain: %s/%s", namespace, name)
    reconcile_domain("delete", namespace, name, body)


def main() -> None:
    """Entry point for running the operator.

    Watches WATCH_NAMESPACE if set, otherwise the whole cluster.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    watch_namespace = os.environ.get("WATCH_NAMESPACE", "")
    logger.info("Starting domain operator...")
    kopf.run(
        standalone=True,
        clusterwide=not watch_namespace,
        namespaces=[watch_namespace] if watch_namespace else [],
    )


if __name__ == "__main__":
    main()
