"""Domain provider client.

Talks to the Vercel domains API and parses its JSON payloads into explicit
result types, so callers never dig through optional fields:

    register_domain   -> DomainRegistration
    verify_ownership  -> OwnershipVerified | MissingChallenge
    fetch_dns_config  -> DnsConfig
    get_deployment    -> Deployment
    assign_alias      -> Alias

HTTP failures are raised as ProviderError subclasses. Nothing is retried
here; each call is a single bounded request with the configured timeout.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from domainlink.core.config import ProviderSettings
from domainlink.core.exceptions import (
    ProviderError,
    ProviderNotFound,
    ProviderRateLimited,
    ProviderUnauthorized,
    ProviderUnavailable,
)
from domainlink.domains.planner import (
    DnsRecord,
    OwnershipChallenge,
    RecordType,
    RoutingRecommendation,
)

logger = structlog.get_logger()

MISSING_TXT_RECORD = "missing_txt_record"
ALREADY_REGISTERED = ("domain_already_in_use", "domain_already_exists")


@dataclass(frozen=True)
class DomainRegistration:
    """Provider response to adding a domain to a project."""

    name: str
    verified: bool
    challenges: tuple[OwnershipChallenge, ...] = ()


@dataclass(frozen=True)
class OwnershipVerified:
    """Ownership check completed without an outstanding challenge."""

    verified: bool = True


@dataclass(frozen=True)
class MissingChallenge:
    """Ownership check failed: the TXT challenge is not in DNS yet."""

    challenge: OwnershipChallenge
    verified: bool = field(default=False, init=False)


OwnershipCheck = OwnershipVerified | MissingChallenge


@dataclass(frozen=True)
class DnsConfig:
    """Provider's view of the domain's current DNS configuration."""

    misconfigured: bool | None
    recommendation: RoutingRecommendation = field(default_factory=RoutingRecommendation)
    current_records: tuple[DnsRecord, ...] = ()


@dataclass(frozen=True)
class Deployment:
    id: str
    url: str


@dataclass(frozen=True)
class Alias:
    alias: str
    uid: str | None = None


class DomainProvider(ABC):
    """Abstract domain provider used by the attachment service."""

    @abstractmethod
    async def register_domain(self, project_name: str, domain: str) -> DomainRegistration:
        """Add a domain to a provider project."""

    @abstractmethod
    async def verify_ownership(self, project_name: str, domain: str) -> OwnershipCheck:
        """Ask the provider to re-check the ownership challenge."""

    @abstractmethod
    async def fetch_dns_config(self, domain: str) -> DnsConfig:
        """Fetch the routing recommendation and misconfiguration flag."""

    @abstractmethod
    async def get_deployment(self, hostname: str) -> Deployment:
        """Look up a deployment by its hostname."""

    @abstractmethod
    async def assign_alias(self, deployment_id: str, domain: str) -> Alias:
        """Point a domain at a specific deployment."""

    async def close(self) -> None:
        """Release network resources."""


def _preferred(entries: Any) -> Any:
    """Return the value of the lowest-rank recommendation entry."""
    if not isinstance(entries, list) or not entries:
        return None
    ranked = sorted(
        (e for e in entries if isinstance(e, dict)),
        key=lambda e: e.get("rank", 0),
    )
    return ranked[0].get("value") if ranked else None


def parse_dns_config(data: dict[str, Any]) -> DnsConfig:
    """Parse a /v6/domains/{domain}/config payload.

    ``recommendedIPv4`` and ``recommendedCNAME`` may carry several ranked
    entries. Only the lowest-rank entry is kept; higher-rank entries are
    discarded, not merged.
    """
    ips = _preferred(data.get("recommendedIPv4"))
    if isinstance(ips, str):
        ips = [ips]
    apex_ips = tuple(dict.fromkeys(ip for ip in ips or [] if ip))

    cname = _preferred(data.get("recommendedCNAME"))
    if isinstance(cname, str):
        cname = cname.rstrip(".") or None
    else:
        cname = None

    current: list[DnsRecord] = []
    for ip in data.get("aValues") or []:
        current.append(DnsRecord(RecordType.A, "@", ip))
    for target in data.get("cnames") or []:
        current.append(DnsRecord(RecordType.CNAME, "@", target))

    misconfigured = data.get("misconfigured")
    return DnsConfig(
        misconfigured=misconfigured if isinstance(misconfigured, bool) else None,
        recommendation=RoutingRecommendation(apex_ips=apex_ips, cname_target=cname),
        current_records=tuple(current),
    )


def parse_challenges(verification: Any) -> tuple[OwnershipChallenge, ...]:
    """Parse the ``verification`` list of a project domain payload."""
    challenges = []
    for item in verification or []:
        if not isinstance(item, dict) or str(item.get("type", "TXT")).upper() != "TXT":
            continue
        if item.get("domain") and item.get("value"):
            challenges.append(OwnershipChallenge(host=item["domain"], value=item["value"]))
    return tuple(challenges)


class VercelClient(DomainProvider):
    """Async client for the Vercel project-domain API.

    Credentials come from ProviderSettings; nothing is read from the
    process environment here.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Provider credentials, team scope and timeout.
            transport: Optional httpx transport (used by tests).

        Raises:
            ProviderUnauthorized: If no API token is configured.
        """
        if not settings.vercel_token:
            raise ProviderUnauthorized("Provider token is not configured")

        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.vercel_api_url,
            headers={"Authorization": f"Bearer {settings.vercel_token}"},
            timeout=httpx.Timeout(settings.provider_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> VercelClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _params(self) -> dict[str, str]:
        if self.settings.vercel_team_id:
            return {"teamId": self.settings.vercel_team_id}
        return {}

    async def _send(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(method, path, params=self._params(), json=json)
        except httpx.TimeoutException as e:
            logger.warning("Provider request timed out", method=method, path=path)
            raise ProviderUnavailable(f"Provider request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            logger.warning("Provider request failed", method=method, path=path, error=str(e))
            raise ProviderUnavailable(f"Provider unreachable: {e}") from e

    @staticmethod
    def _body(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _raise_for_status(self, response: httpx.Response, data: dict[str, Any]) -> None:
        if response.is_success:
            return

        error = data.get("error") if isinstance(data.get("error"), dict) else {}
        code = error.get("code")
        message = error.get("message") or f"Provider returned HTTP {response.status_code}"
        status = response.status_code
        kwargs: dict[str, Any] = {"status": status, "detail": data or None}

        logger.info("Provider error", status=status, code=code, path=response.request.url.path)

        if status == 404:
            raise ProviderNotFound(message, **kwargs)
        if status in (401, 403):
            raise ProviderUnauthorized(message, **kwargs)
        if status == 429:
            retry_after = response.headers.get("Retry-After")
            raise ProviderRateLimited(
                message,
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                **kwargs,
            )
        if status >= 500:
            raise ProviderUnavailable(message, **kwargs)
        raise ProviderError(message, code=code, **kwargs)

    async def _project_domain(self, project_name: str, domain: str) -> dict[str, Any] | None:
        """Fetch the domain as registered on the project, or None if absent."""
        response = await self._send("GET", f"/v9/projects/{project_name}/domains/{domain}")
        if response.status_code == 404:
            return None
        data = self._body(response)
        self._raise_for_status(response, data)
        return data

    async def register_domain(self, project_name: str, domain: str) -> DomainRegistration:
        response = await self._send(
            "POST", f"/v10/projects/{project_name}/domains", json={"name": domain}
        )
        data = self._body(response)

        error = data.get("error") if isinstance(data.get("error"), dict) else {}
        if not response.is_success and (
            response.status_code == 409 or error.get("code") in ALREADY_REGISTERED
        ):
            # a conflict is only fatal when the domain belongs to another project
            existing = await self._project_domain(project_name, domain)
            if existing is None:
                self._raise_for_status(response, data)
            logger.info("Domain already on project", project=project_name, domain=domain)
            data = existing
        else:
            self._raise_for_status(response, data)

        registration = DomainRegistration(
            name=data.get("name", domain),
            verified=data.get("verified") is True,
            challenges=parse_challenges(data.get("verification")),
        )
        logger.debug(
            "Domain registered with provider",
            project=project_name,
            domain=domain,
            verified=registration.verified,
            challenges=len(registration.challenges),
        )
        return registration

    async def verify_ownership(self, project_name: str, domain: str) -> OwnershipCheck:
        response = await self._send(
            "POST", f"/v9/projects/{project_name}/domains/{domain}/verify"
        )
        data = self._body(response)

        error = data.get("error") if isinstance(data.get("error"), dict) else {}
        if not response.is_success and error.get("code") == MISSING_TXT_RECORD:
            record = error.get("record")
            if isinstance(record, dict) and record.get("name") and record.get("value"):
                return MissingChallenge(OwnershipChallenge(record["name"], record["value"]))
            challenges = parse_challenges(data.get("verification"))
            if not challenges:
                existing = await self._project_domain(project_name, domain)
                challenges = parse_challenges((existing or {}).get("verification"))
            if challenges:
                return MissingChallenge(challenges[0])
            logger.warning("Missing TXT record reported without a challenge", domain=domain)
            return OwnershipVerified(verified=False)

        self._raise_for_status(response, data)

        if data.get("verified") is True:
            return OwnershipVerified()

        challenges = parse_challenges(data.get("verification"))
        if challenges:
            return MissingChallenge(challenges[0])
        return OwnershipVerified(verified=False)

    async def fetch_dns_config(self, domain: str) -> DnsConfig:
        response = await self._send("GET", f"/v6/domains/{domain}/config")
        data = self._body(response)
        self._raise_for_status(response, data)
        return parse_dns_config(data)

    async def get_deployment(self, hostname: str) -> Deployment:
        response = await self._send("GET", f"/v13/deployments/{hostname}")
        data = self._body(response)
        self._raise_for_status(response, data)
        return Deployment(id=data["id"], url=data.get("url", hostname))

    async def assign_alias(self, deployment_id: str, domain: str) -> Alias:
        response = await self._send(
            "POST", f"/v2/deployments/{deployment_id}/aliases", json={"alias": domain}
        )
        data = self._body(response)
        self._raise_for_status(response, data)
        return Alias(alias=data.get("alias", domain), uid=data.get("uid"))
