"""Tests for domain record storage."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from domainlink.core.exceptions import DuplicateDomain
from domainlink.domains.planner import DnsRecord, RecordType
from domainlink.domains.storage import (
    DomainRecord,
    PostgresDomainRecordStore,
    SQLiteDomainRecordStore,
    create_store,
)

T0 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)

A_RECORD = DnsRecord(RecordType.A, "@", "76.76.21.21")
TXT_RECORD = DnsRecord(RecordType.TXT, "_vercel.example.com", "abc123")


def _record(
    project_id: str = "proj1",
    domain: str = "example.com",
    required_dns: list[DnsRecord] | None = None,
    at: datetime = T0,
    **kwargs,
) -> DomainRecord:
    return DomainRecord(
        project_id=project_id,
        project_name="app-x1",
        deployment_url="app-x1.deployer.app",
        custom_domain=domain,
        required_dns=[A_RECORD] if required_dns is None else required_dns,
        created_at=at,
        updated_at=at,
        **kwargs,
    )


class TestDomainRecord:
    """Tests for DomainRecord serialization."""

    def test_to_dict(self):
        record = _record(ownership_verified=True, routing_verified=True)
        data = record.to_dict()

        assert data["custom_domain"] == "example.com"
        assert data["required_dns"] == [A_RECORD.to_dict()]
        assert data["fully_verified"] is True
        assert data["created_at"] == "2024-01-15T10:00:00+00:00"

    def test_from_row_with_json_string(self):
        """Test rows where required_dns is stored as JSON text."""
        row = {
            "project_id": "proj1",
            "project_name": "app-x1",
            "deployment_url": "app-x1.deployer.app",
            "custom_domain": "example.com",
            "required_dns": '[{"type": "A", "host": "@", "value": "76.76.21.21", "ttl": 60}]',
            "ownership_verified": 1,
            "routing_verified": 0,
            "fully_verified": 0,
            "created_at": "2024-01-15T10:00:00+00:00",
            "updated_at": "2024-01-15T10:00:00+00:00",
        }
        record = DomainRecord.from_row(row)

        assert record.required_dns == [A_RECORD]
        assert record.ownership_verified is True
        assert record.fully_verified is False
        assert record.created_at == T0


class TestSQLiteDomainRecordStore:
    """Tests for SQLiteDomainRecordStore."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("nope") is None
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, store):
        await store.initialize()
        await store.upsert(_record())
        await store.initialize()
        assert await store.get("proj1") is not None

    @pytest.mark.asyncio
    async def test_upsert_and_get(self, store):
        await store.upsert(_record(required_dns=[TXT_RECORD, A_RECORD]))

        record = await store.get("proj1")
        assert record is not None
        assert record.custom_domain == "example.com"
        assert record.required_dns == [TXT_RECORD, A_RECORD]
        assert record.created_at == T0

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, store):
        """Test that repeating an upsert leaves one identical row."""
        await store.upsert(_record())
        await store.upsert(_record())

        records = await store.list_all()
        assert len(records) == 1
        assert records[0] == _record()

    @pytest.mark.asyncio
    async def test_upsert_replaces_fields_but_keeps_created_at(self, store):
        """Test that a second attach for a project overwrites the row."""
        await store.upsert(_record())
        later = T0 + timedelta(minutes=5)
        await store.upsert(
            _record(domain="blog.example.com", required_dns=[TXT_RECORD], at=later)
        )

        record = await store.get("proj1")
        assert record.custom_domain == "blog.example.com"
        assert record.required_dns == [TXT_RECORD]
        assert record.created_at == T0
        assert record.updated_at == later
        assert await store.get_by_domain("example.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_domain_across_projects(self, store):
        """Test that a domain can belong to only one project."""
        await store.upsert(_record("proj1"))

        with pytest.raises(DuplicateDomain) as exc_info:
            await store.upsert(_record("proj2"))

        assert exc_info.value.domain == "example.com"
        assert (await store.get("proj2")) is None
        assert (await store.get_by_domain("example.com")).project_id == "proj1"

    @pytest.mark.asyncio
    async def test_concurrent_upserts_same_project(self, store):
        """Test that concurrent writes for one project leave exactly one row."""
        await asyncio.gather(
            store.upsert(_record(domain="a.example.com")),
            store.upsert(_record(domain="b.example.com")),
        )

        records = await store.list_all()
        assert len(records) == 1
        assert records[0].custom_domain in ("a.example.com", "b.example.com")

    @pytest.mark.asyncio
    async def test_update_verification(self, store):
        await store.upsert(_record())
        later = T0 + timedelta(seconds=10)

        updated = await store.update_verification(
            "proj1",
            "example.com",
            ownership_verified=True,
            routing_verified=True,
            updated_at=later,
        )

        record = await store.get("proj1")
        assert updated is True
        assert record.fully_verified is True
        assert record.updated_at == later
        assert record.created_at == T0
        assert record.required_dns == [A_RECORD]

    @pytest.mark.asyncio
    async def test_update_verification_keeps_routing_when_none(self, store):
        """Test that routing_verified=None leaves the stored flag alone."""
        await store.upsert(_record(ownership_verified=True, routing_verified=True))

        await store.update_verification(
            "proj1",
            "example.com",
            ownership_verified=False,
            routing_verified=None,
            updated_at=T0 + timedelta(seconds=1),
        )

        record = await store.get("proj1")
        assert record.ownership_verified is False
        assert record.routing_verified is True
        assert record.fully_verified is False

    @pytest.mark.asyncio
    async def test_update_verification_replaces_required_dns(self, store):
        await store.upsert(_record(required_dns=[TXT_RECORD, A_RECORD]))

        await store.update_verification(
            "proj1",
            "example.com",
            ownership_verified=True,
            routing_verified=False,
            updated_at=T0 + timedelta(seconds=1),
            required_dns=[A_RECORD],
        )

        record = await store.get("proj1")
        assert record.required_dns == [A_RECORD]

    @pytest.mark.asyncio
    async def test_update_verification_domain_mismatch(self, store):
        """Test that verification of another domain does not touch the row."""
        await store.upsert(_record())

        updated = await store.update_verification(
            "proj1",
            "other.com",
            ownership_verified=True,
            routing_verified=True,
            updated_at=T0 + timedelta(seconds=1),
        )

        assert updated is False
        assert (await store.get("proj1")).fully_verified is False

    @pytest.mark.asyncio
    async def test_list_all_ordered_by_project(self, store):
        await store.upsert(_record("proj2", "b.example.com"))
        await store.upsert(_record("proj1", "a.example.com"))

        records = await store.list_all()
        assert [r.project_id for r in records] == ["proj1", "proj2"]

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        db_path = str(tmp_path / "persist.db")
        first = SQLiteDomainRecordStore(db_path)
        await first.initialize()
        await first.upsert(_record())
        await first.close()

        second = SQLiteDomainRecordStore(db_path)
        await second.initialize()
        try:
            assert (await second.get("proj1")).custom_domain == "example.com"
        finally:
            await second.close()


class TestCreateStore:
    """Tests for create_store()."""

    def test_sqlite_path(self):
        store = create_store("sqlite:///data/domains.db")
        assert isinstance(store, SQLiteDomainRecordStore)
        assert store.db_path == "data/domains.db"

    @pytest.mark.asyncio
    async def test_sqlite_memory(self):
        store = create_store("sqlite::memory:")
        assert isinstance(store, SQLiteDomainRecordStore)

        await store.initialize()
        try:
            await store.upsert(_record())
            assert (await store.get("proj1")) is not None
        finally:
            await store.close()

    @pytest.mark.parametrize("url", ["postgresql://u:p@localhost/db", "postgres://u:p@localhost/db"])
    def test_postgres(self, url):
        """Test that the driver is not imported until first use."""
        store = create_store(url)
        assert isinstance(store, PostgresDomainRecordStore)
        assert store.placeholder == "%s"

    def test_invalid_url(self):
        with pytest.raises(ValueError):
            create_store("mysql://localhost/db")
