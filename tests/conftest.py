"""Shared fixtures for domainlink tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from domainlink.core.config import clear_config
from domainlink.core.exceptions import ProviderNotFound
from domainlink.domains.planner import DnsRecord, OwnershipChallenge, RecordType, RoutingRecommendation
from domainlink.domains.provider import (
    Alias,
    Deployment,
    DnsConfig,
    DomainProvider,
    DomainRegistration,
    OwnershipCheck,
    OwnershipVerified,
)
from domainlink.domains.storage import SQLiteDomainRecordStore

APEX_IPS = ("76.76.21.21",)
CNAME_TARGET = "cname.deployer.app"


class FakeProvider(DomainProvider):
    """In-memory provider whose answers are set by each test."""

    def __init__(self) -> None:
        self.challenges: tuple[OwnershipChallenge, ...] = ()
        self.registered_verified = True
        self.ownership: OwnershipCheck = OwnershipVerified()
        self.dns_config = DnsConfig(
            misconfigured=False,
            recommendation=RoutingRecommendation(apex_ips=APEX_IPS, cname_target=CNAME_TARGET),
            current_records=(DnsRecord(RecordType.A, "@", "76.76.21.21"),),
        )
        self.deployments: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.closed = False

    async def register_domain(self, project_name: str, domain: str) -> DomainRegistration:
        self.calls.append(("register_domain", project_name, domain))
        return DomainRegistration(
            name=domain,
            verified=self.registered_verified,
            challenges=self.challenges,
        )

    async def verify_ownership(self, project_name: str, domain: str) -> OwnershipCheck:
        self.calls.append(("verify_ownership", project_name, domain))
        return self.ownership

    async def fetch_dns_config(self, domain: str) -> DnsConfig:
        self.calls.append(("fetch_dns_config", domain))
        return self.dns_config

    async def get_deployment(self, hostname: str) -> Deployment:
        self.calls.append(("get_deployment", hostname))
        if hostname not in self.deployments:
            raise ProviderNotFound(f"Deployment {hostname} not found", status=404)
        return Deployment(id=self.deployments[hostname], url=hostname)

    async def assign_alias(self, deployment_id: str, domain: str) -> Alias:
        self.calls.append(("assign_alias", deployment_id, domain))
        return Alias(alias=domain, uid="alias_1")

    async def close(self) -> None:
        self.closed = True


class StepClock:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture(autouse=True)
def _reset_config():
    clear_config()
    yield
    clear_config()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest_asyncio.fixture
async def store(tmp_path):
    store = SQLiteDomainRecordStore(str(tmp_path / "domains.db"))
    await store.initialize()
    yield store
    await store.close()
