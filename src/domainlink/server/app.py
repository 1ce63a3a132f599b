"""HTTP routes exposing domain attachment to the hosting platform.

Routes:
    POST /domains/attach  - {domain, projectId, deploymentUrl[, projectName]}
    POST /domains/verify  - {domain, projectId[, replan]}
    POST /domains/alias   - {domain, deploymentUrl}
    GET  /domains         - ?projectId=
    GET  /health
"""

from __future__ import annotations

from typing import Any

import structlog
from aiohttp import web

from domainlink.core.config import DomainLinkConfig
from domainlink.core.exceptions import (
    DomainLinkError,
    DuplicateDomain,
    InvalidDomainFormat,
    MissingField,
    MissingOwnershipRecord,
    PersistenceFailure,
    ProviderError,
    ProviderNotFound,
    ProviderRateLimited,
    ProviderUnavailable,
)
from domainlink.domains.provider import VercelClient
from domainlink.domains.service import DomainAttachmentService
from domainlink.domains.storage import create_store

logger = structlog.get_logger()

SERVICE_KEY = web.AppKey("service", DomainAttachmentService)


def error_status(error: DomainLinkError) -> int:
    """HTTP status for a domainlink error."""
    if isinstance(error, (InvalidDomainFormat, MissingField, MissingOwnershipRecord)):
        return 400
    if isinstance(error, DuplicateDomain):
        return 409
    if isinstance(error, ProviderNotFound):
        return 404
    if isinstance(error, ProviderRateLimited):
        return 429
    if isinstance(error, (ProviderUnavailable, PersistenceFailure)):
        return 503
    if isinstance(error, ProviderError):
        return 502
    return 500


def _records(records: Any) -> list[dict[str, Any]] | None:
    if records is None:
        return None
    return [r.to_dict() for r in records]


class DomainHandler:
    """Handles HTTP requests for domain attachment.

    Errors raised by the service are rendered as JSON with a status code
    from error_status(); unexpected exceptions become a 500.
    """

    def __init__(self, service: DomainAttachmentService) -> None:
        self._service = service

    def register_routes(self, app: web.Application) -> None:
        """Register domain routes on an aiohttp application."""
        app.router.add_post("/domains/attach", self.handle_attach)
        app.router.add_post("/domains/verify", self.handle_verify)
        app.router.add_post("/domains/alias", self.handle_alias)
        app.router.add_get("/domains", self.handle_get)
        app.router.add_get("/health", self.handle_health)

    @web.middleware
    async def error_middleware(self, request: web.Request, handler: Any) -> web.StreamResponse:
        try:
            return await handler(request)
        except DomainLinkError as e:
            status = error_status(e)
            if status >= 500:
                logger.error("Domain request failed", path=request.path, error=e.code)
            body = {"success": False, **e.to_dict()}
            if isinstance(e, MissingOwnershipRecord):
                body["type"] = "missing-txt-record"
            return web.json_response(body, status=status)

    @staticmethod
    async def _body(request: web.Request) -> dict[str, Any]:
        try:
            data = await request.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def handle_attach(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        result = await self._service.attach(
            project_id=body.get("projectId"),
            deployment_url=body.get("deploymentUrl"),
            domain=body.get("domain"),
            project_name=body.get("projectName"),
        )
        record = result.record
        return web.json_response(
            {
                "success": True,
                "domain": record.custom_domain,
                "projectId": record.project_id,
                "requiredDns": _records(record.required_dns),
                "status": {
                    "state": result.status.value,
                    "ownershipVerified": result.state.ownership_verified,
                    "routingVerified": result.state.routing_verified,
                    "fullyVerified": result.state.fully_verified,
                },
            }
        )

    async def handle_verify(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        result = await self._service.verify(
            project_id=body.get("projectId"),
            domain=body.get("domain"),
            replan=body.get("replan") is True,
        )
        payload: dict[str, Any] = {
            "success": True,
            "domain": result.domain,
            "projectId": result.project_id,
            "status": result.status.value,
            "ownershipVerified": result.state.ownership_verified,
            "routingVerified": result.state.routing_verified,
            "fullyVerified": result.state.fully_verified,
            "currentRecords": _records(result.current_records),
        }
        if result.required_dns is not None:
            payload["requiredRecords"] = _records(result.required_dns)
        return web.json_response(payload)

    async def handle_alias(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        alias = await self._service.alias(
            deployment_url=body.get("deploymentUrl"),
            domain=body.get("domain"),
        )
        return web.json_response(
            {
                "success": True,
                "domain": body.get("domain"),
                "alias": alias.alias,
                "message": f"Domain {alias.alias} successfully attached to deployment.",
            }
        )

    async def handle_get(self, request: web.Request) -> web.Response:
        record = await self._service.get(request.query.get("projectId"))
        if record is None:
            return web.json_response({"exists": False})

        # DNS instructions are only useful until the domain is live
        return web.json_response(
            {
                "exists": True,
                "projectId": record.project_id,
                "projectName": record.project_name,
                "deploymentUrl": record.deployment_url,
                "customDomain": record.custom_domain,
                "ownershipVerified": record.ownership_verified,
                "routingVerified": record.routing_verified,
                "fullyVerified": record.fully_verified,
                "requiredDns": None if record.fully_verified else _records(record.required_dns),
                "updatedAt": record.updated_at.isoformat(),
            }
        )

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy"})


def create_app(service: DomainAttachmentService) -> web.Application:
    """Create the aiohttp application for a service."""
    handler = DomainHandler(service)
    app = web.Application(middlewares=[handler.error_middleware])
    app[SERVICE_KEY] = service
    handler.register_routes(app)
    return app


async def build_app(config: DomainLinkConfig) -> web.Application:
    """Create the application with a store and provider built from config."""
    store = create_store(config.storage.database_url)
    await store.initialize()
    provider = VercelClient(config.provider)
    service = DomainAttachmentService(
        provider,
        store,
        deployment_suffix=config.provider.deployment_suffix,
    )
    app = create_app(service)

    async def close(app: web.Application) -> None:
        await provider.close()
        await store.close()

    app.on_cleanup.append(close)
    return app


def run_server(config: DomainLinkConfig) -> None:
    """Serve the HTTP routes until interrupted."""
    logger.info(
        "Starting domainlink server",
        host=config.server.server_host,
        port=config.server.server_port,
    )
    web.run_app(
        build_app(config),
        host=config.server.server_host,
        port=config.server.server_port,
        print=None,
    )
