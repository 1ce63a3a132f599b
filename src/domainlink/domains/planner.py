"""Required DNS record planning.

Turns the provider's ownership challenges and routing recommendation into
the ordered list of records the customer must configure:

    _vercel.example.com  TXT    vc-domain-verify=example.com,abc123
    @                    A      76.76.21.21          (apex domains)
    blog                 CNAME  cname.vercel-dns.com (subdomains)

The plan is recomputed from provider data every time. It is never merged
with a previous plan.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from domainlink.domains.classifier import Apex, Classification, Subdomain

DEFAULT_TTL = 60


class RecordType(str, Enum):
    """DNS record kinds the planner can emit."""

    TXT = "TXT"
    A = "A"
    CNAME = "CNAME"


@dataclass(frozen=True)
class DnsRecord:
    """A DNS record the customer must configure.

    Equality is structural over kind, host and value; ttl is advisory.
    """

    kind: RecordType
    host: str
    value: str
    ttl: int = field(default=DEFAULT_TTL, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.kind.value,
            "host": self.host,
            "value": self.value,
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DnsRecord:
        """Create from dictionary (JSON deserialization)."""
        return cls(
            kind=RecordType(data["type"]),
            host=data["host"],
            value=data["value"],
            ttl=data.get("ttl", DEFAULT_TTL),
        )


@dataclass(frozen=True)
class OwnershipChallenge:
    """A TXT challenge the provider requires to prove domain ownership."""

    host: str
    value: str


@dataclass(frozen=True)
class RoutingRecommendation:
    """Where the provider wants the domain's traffic pointed."""

    apex_ips: tuple[str, ...] = ()
    cname_target: str | None = None


def plan(
    classification: Classification,
    ownership_challenges: Iterable[OwnershipChallenge],
    routing: RoutingRecommendation,
) -> list[DnsRecord]:
    """Derive the ordered required DNS record set.

    TXT records come first, in challenge order, followed by the routing
    records. Classification alone selects A versus CNAME, so a plan never
    contains both.

    Args:
        classification: Result of classify() for the custom domain.
        ownership_challenges: Outstanding TXT challenges from the provider.
        routing: The provider's routing recommendation.

    Returns:
        Ordered list without structural duplicates.
    """
    records: list[DnsRecord] = []

    for challenge in ownership_challenges:
        records.append(DnsRecord(RecordType.TXT, challenge.host, challenge.value))

    if isinstance(classification, Apex):
        for ip in routing.apex_ips:
            records.append(DnsRecord(RecordType.A, "@", ip))
    elif isinstance(classification, Subdomain):
        if routing.cname_target:
            records.append(
                DnsRecord(RecordType.CNAME, classification.label, routing.cname_target)
            )
    else:
        raise TypeError(f"Unknown classification: {classification!r}")

    # dict preserves first-seen order
    return list(dict.fromkeys(records))
