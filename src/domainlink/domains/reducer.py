"""Verification state reduction.

Verification is level-triggered: every check re-derives both flags from the
provider's current answers. Nothing is latched from a previous check, so a
domain that was verified yesterday and is misconfigured today reports
misconfigured today.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class AttachmentStatus(Enum):
    """Overall status of a domain attachment."""

    UNREGISTERED = "unregistered"
    PENDING_OWNERSHIP = "pending_ownership"
    PENDING_ROUTING = "pending_routing"
    VERIFIED = "verified"


class OwnershipSignal(Protocol):
    verified: bool


class RoutingSignal(Protocol):
    misconfigured: bool | None


@dataclass(frozen=True)
class VerificationState:
    """Both verification dimensions of a domain."""

    ownership_verified: bool
    routing_verified: bool

    @property
    def fully_verified(self) -> bool:
        """True only when ownership and routing are both verified."""
        return self.ownership_verified and self.routing_verified

    @property
    def status(self) -> AttachmentStatus:
        return status_for(self.ownership_verified, self.routing_verified)


def status_for(ownership_verified: bool, routing_verified: bool) -> AttachmentStatus:
    """Map stored flags onto the attachment state machine."""
    if not ownership_verified:
        return AttachmentStatus.PENDING_OWNERSHIP
    if not routing_verified:
        return AttachmentStatus.PENDING_ROUTING
    return AttachmentStatus.VERIFIED


def reduce(ownership: OwnershipSignal, routing: RoutingSignal) -> VerificationState:
    """Derive verification state from the latest provider checks.

    Args:
        ownership: Latest ownership check; only ``verified`` is read.
        routing: Latest DNS config check; only ``misconfigured`` is read. An
            unknown (None) value is treated as misconfigured.

    Returns:
        The new VerificationState.
    """
    return VerificationState(
        ownership_verified=ownership.verified is True,
        routing_verified=routing.misconfigured is False,
    )
