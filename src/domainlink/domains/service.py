"""Domain attachment service.

This module provides the main interface for attaching customer domains:
- Attachment: register with the provider, plan required DNS, persist
- Verification: re-check ownership and routing, persist the new flags
- Lookup of the stored attachment for a project
- Aliasing a domain to one specific deployment

Usage:
    service = DomainAttachmentService(provider, store)

    result = await service.attach("proj1", "https://app-x1.vercel.app", "example.com")
    for record in result.required_dns:
        print(record.kind.value, record.host, record.value)

    status = await service.verify("proj1", "example.com")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from domainlink.core.exceptions import MissingField, MissingOwnershipRecord
from domainlink.domains.classifier import (
    classify,
    extract_project_name,
    normalize_deployment_url,
    normalize_domain,
)
from domainlink.domains.planner import DnsRecord, OwnershipChallenge, RecordType, plan
from domainlink.domains.provider import Alias, DomainProvider, MissingChallenge
from domainlink.domains.reducer import AttachmentStatus, VerificationState, reduce
from domainlink.domains.storage import DomainRecord, DomainRecordStore, utc_now

logger = structlog.get_logger()


@dataclass
class AttachResult:
    """Outcome of an attach request."""

    record: DomainRecord
    state: VerificationState

    @property
    def required_dns(self) -> list[DnsRecord]:
        return self.record.required_dns

    @property
    def status(self) -> AttachmentStatus:
        return self.state.status


@dataclass
class VerifyResult:
    """Outcome of a verify request.

    ``persisted`` is False when no stored attachment matches the project and
    domain, in which case the provider's answer is reported but not saved.
    """

    project_id: str
    domain: str
    state: VerificationState
    current_records: list[DnsRecord] = field(default_factory=list)
    required_dns: list[DnsRecord] | None = None
    persisted: bool = True

    @property
    def status(self) -> AttachmentStatus:
        return self.state.status


def _require(**fields: object) -> None:
    # request bodies are untyped JSON; a non-string counts as missing
    missing = [
        name for name, value in fields.items()
        if not isinstance(value, str) or not value.strip()
    ]
    if missing:
        raise MissingField(missing)


class DomainAttachmentService:
    """Coordinates the provider, the planner/reducer and the store.

    Holds no mutable state of its own; every call reads the provider's
    current truth and writes it through a single upsert.
    """

    def __init__(
        self,
        provider: DomainProvider,
        store: DomainRecordStore,
        deployment_suffix: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            provider: Domain provider client.
            store: Domain record store.
            deployment_suffix: Hostname suffix required by alias().
            clock: Source of timestamps for created_at/updated_at.
        """
        self.provider = provider
        self.store = store
        self.deployment_suffix = deployment_suffix
        self._clock = clock

    async def attach(
        self,
        project_id: str,
        deployment_url: str,
        domain: str,
        project_name: str | None = None,
    ) -> AttachResult:
        """Attach a custom domain to a project.

        Registers the domain with the provider, fetches its DNS config,
        plans the required records and upserts the project's record. The
        initial state is whatever the provider reports right now, usually
        pending ownership.

        Raises:
            MissingField: If project_id, deployment_url or domain is empty.
            InvalidDomainFormat: If the domain or deployment URL is malformed.
            ProviderError: If a provider call fails.
            DuplicateDomain: If another project already holds the domain.
        """
        _require(domain=domain, projectId=project_id, deploymentUrl=deployment_url)
        if project_name is not None:
            _require(projectName=project_name)

        domain = normalize_domain(domain)
        classification = classify(domain)
        deployment_host = normalize_deployment_url(deployment_url)
        project_name = project_name or extract_project_name(deployment_host)

        registration = await self.provider.register_domain(project_name, domain)
        config = await self.provider.fetch_dns_config(domain)

        required = plan(classification, registration.challenges, config.recommendation)
        state = reduce(registration, config)

        now = self._clock()
        existing = await self.store.get(project_id)
        record = DomainRecord(
            project_id=project_id,
            project_name=project_name,
            deployment_url=deployment_host,
            custom_domain=domain,
            required_dns=required,
            ownership_verified=state.ownership_verified,
            routing_verified=state.routing_verified,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self.store.upsert(record)

        logger.info(
            "Domain attached",
            project_id=project_id,
            domain=domain,
            status=state.status.value,
            required_records=len(required),
        )
        return AttachResult(record=record, state=state)

    async def verify(
        self,
        project_id: str,
        domain: str,
        replan: bool = False,
    ) -> VerifyResult:
        """Re-check ownership and routing for an attached domain.

        Only the verification fields are written. ``required_dns`` is
        recomputed only when ``replan`` is set.

        Raises:
            MissingField: If project_id or domain is empty.
            MissingOwnershipRecord: If the ownership TXT record is not in
                place yet. Routing is not checked in that case.
            ProviderError: If a provider call fails.
        """
        _require(domain=domain, projectId=project_id)

        domain = normalize_domain(domain)
        classification = classify(domain)

        existing = await self.store.get(project_id)
        project_name = existing.project_name if existing else project_id

        ownership = await self.provider.verify_ownership(project_name, domain)

        if isinstance(ownership, MissingChallenge):
            record = DnsRecord(
                RecordType.TXT, ownership.challenge.host, ownership.challenge.value
            )
            await self.store.update_verification(
                project_id,
                domain,
                ownership_verified=False,
                routing_verified=None,
                updated_at=self._clock(),
            )
            logger.info(
                "Domain ownership record missing",
                project_id=project_id,
                domain=domain,
                host=record.host,
            )
            raise MissingOwnershipRecord(domain, record)

        config = await self.provider.fetch_dns_config(domain)
        state = reduce(ownership, config)

        required = None
        if replan:
            # challenges are only issued at registration; reuse the stored TXT records
            challenges: list[OwnershipChallenge] = []
            if existing and not state.ownership_verified:
                challenges = [
                    OwnershipChallenge(r.host, r.value)
                    for r in existing.required_dns
                    if r.kind == RecordType.TXT
                ]
            required = plan(classification, challenges, config.recommendation)

        persisted = await self.store.update_verification(
            project_id,
            domain,
            ownership_verified=state.ownership_verified,
            routing_verified=state.routing_verified,
            updated_at=self._clock(),
            required_dns=required,
        )
        if not persisted:
            logger.warning(
                "Verified domain has no matching attachment",
                project_id=project_id,
                domain=domain,
            )

        logger.info(
            "Domain verified",
            project_id=project_id,
            domain=domain,
            status=state.status.value,
        )
        return VerifyResult(
            project_id=project_id,
            domain=domain,
            state=state,
            current_records=list(config.current_records),
            required_dns=required,
            persisted=persisted,
        )

    async def get(self, project_id: str) -> DomainRecord | None:
        """Get the stored attachment for a project.

        Raises:
            MissingField: If project_id is empty.
        """
        _require(projectId=project_id)
        return await self.store.get(project_id)

    async def status(self, project_id: str) -> AttachmentStatus:
        """Get the attachment status implied by the stored flags."""
        record = await self.get(project_id)
        if record is None:
            return AttachmentStatus.UNREGISTERED
        return VerificationState(record.ownership_verified, record.routing_verified).status

    async def alias(self, deployment_url: str, domain: str) -> Alias:
        """Point a domain at one specific deployment.

        Raises:
            MissingField: If deployment_url or domain is empty.
            InvalidDomainFormat: If the deployment URL is not a deployment
                hostname under the configured suffix.
            ProviderNotFound: If the deployment does not exist.
        """
        _require(domain=domain, deploymentUrl=deployment_url)

        domain = normalize_domain(domain)
        classify(domain)
        host = normalize_deployment_url(deployment_url, self.deployment_suffix)

        deployment = await self.provider.get_deployment(host)
        alias = await self.provider.assign_alias(deployment.id, domain)

        logger.info("Domain aliased", domain=domain, deployment_id=deployment.id)
        return alias
