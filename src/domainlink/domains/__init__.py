"""Custom domain attachment and verification.

This package attaches customer-supplied domains to deployed projects
(e.g., example.com or blog.example.com instead of my-app-x1.vercel.app).

Features:
- Apex/subdomain classification of customer hostnames
- Required DNS planning (TXT for ownership, A or CNAME for routing)
- Level-triggered verification of ownership and routing
- SQLite/PostgreSQL storage with per-project upserts

Usage:
    from domainlink.domains import DomainAttachmentService, VercelClient, create_store

    store = create_store("sqlite:///domains.db")
    await store.initialize()
    async with VercelClient(settings) as provider:
        service = DomainAttachmentService(provider, store)
        result = await service.attach("proj1", "https://app-x1.vercel.app", "example.com")
"""

from domainlink.domains.classifier import (
    Apex,
    Classification,
    Subdomain,
    classify,
    extract_project_name,
    normalize_deployment_url,
    normalize_domain,
)
from domainlink.domains.planner import (
    DnsRecord,
    OwnershipChallenge,
    RecordType,
    RoutingRecommendation,
    plan,
)
from domainlink.domains.provider import (
    DnsConfig,
    DomainProvider,
    DomainRegistration,
    MissingChallenge,
    OwnershipVerified,
    VercelClient,
)
from domainlink.domains.reducer import AttachmentStatus, VerificationState, reduce
from domainlink.domains.service import AttachResult, DomainAttachmentService, VerifyResult
from domainlink.domains.storage import (
    DomainRecord,
    DomainRecordStore,
    PostgresDomainRecordStore,
    SQLiteDomainRecordStore,
    create_store,
)

__all__ = [
    "Apex",
    "Classification",
    "Subdomain",
    "classify",
    "extract_project_name",
    "normalize_deployment_url",
    "normalize_domain",
    "DnsRecord",
    "OwnershipChallenge",
    "RecordType",
    "RoutingRecommendation",
    "plan",
    "DnsConfig",
    "DomainProvider",
    "DomainRegistration",
    "MissingChallenge",
    "OwnershipVerified",
    "VercelClient",
    "AttachmentStatus",
    "VerificationState",
    "reduce",
    "AttachResult",
    "DomainAttachmentService",
    "VerifyResult",
    "DomainRecord",
    "DomainRecordStore",
    "PostgresDomainRecordStore",
    "SQLiteDomainRecordStore",
    "create_store",
]
