"""Finalizer state machine for Domain resources.

The controller's finalizer marks a pending cleanup obligation. A Domain
moves through these states::

    NO_FINALIZER -> ACTIVE -> TERMINATING -> REMOVED

The marker is always persisted before any external side effect, and it is
only removed once both the database record and the namespace are gone.
"""

from enum import Enum

from constants import DOMAIN_FINALIZER
from models import Domain


class FinalizerState(Enum):
    """Lifecycle state of a Domain with respect to our finalizer."""

    NO_FINALIZER = "NoFinalizer"
    ACTIVE = "Active"
    TERMINATING = "Terminating"
    REMOVED = "Removed"


def has_finalizer(domain: Domain, finalizer: str = DOMAIN_FINALIZER) -> bool:
    return finalizer in domain.finalizers


def finalizer_state(
    domain: Domain, finalizer: str = DOMAIN_FINALIZER
) -> FinalizerState:
    """Derive the finalizer state from the observed resource.

    A resource under deletion that no longer carries our marker is
    REMOVED: cleanup already happened and nothing is left to do.
    """
    present = has_finalizer(domain, finalizer)
    if domain.is_deleting:
        return FinalizerState.TERMINATING if present else FinalizerState.REMOVED
    return FinalizerState.ACTIVE if present else FinalizerState.NO_FINALIZER


def add_finalizer(
    finalizers: list[str], finalizer: str = DOMAIN_FINALIZER
) -> list[str]:
    """Return a copy of finalizers with ours appended (if missing)."""
    if finalizer in finalizers:
        return list(finalizers)
    return [*finalizers, finalizer]


def remove_finalizer(
    finalizers: list[str], finalizer: str = DOMAIN_FINALIZER
) -> list[str]:
    """Return a copy of finalizers without ours, foreign ones untouched."""
    return [f for f in finalizers if f != finalizer]
