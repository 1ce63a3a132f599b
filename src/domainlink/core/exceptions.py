"""Error taxonomy for domain attachment and verification.

Every error carries a stable machine-readable ``code`` and enough structured
detail (the expected DNS record, the conflicting domain, the provider status)
for the caller to resolve it without contacting support.

Only ``ProviderUnavailable`` and ``PersistenceFailure`` are fatal to a
request. All other errors are expected branches of normal operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from domainlink.domains.planner import DnsRecord


class DomainLinkError(Exception):
    """Base class for all domainlink errors."""

    code = "domainlink_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-serializable payload."""
        return {"error": self.code, "message": self.message}


class InvalidDomainFormat(DomainLinkError):
    """Hostname is malformed or has fewer than two labels."""

    code = "invalid_domain_format"

    def __init__(self, domain: str, reason: str) -> None:
        super().__init__(f"Invalid hostname {domain!r}: {reason}")
        self.domain = domain
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "domain": self.domain, "reason": self.reason}


class MissingField(DomainLinkError):
    """Caller omitted required request fields or sent them as non-strings."""

    code = "missing_field"

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = list(fields)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "fields": self.fields}


class ProviderError(DomainLinkError):
    """The domain provider rejected a request.

    Attributes:
        code: Provider error code (e.g. ``domain_already_in_use``).
        status: HTTP status returned by the provider, if any.
        detail: Raw error body returned by the provider.
    """

    code = "provider_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        if code:
            self.code = code
        self.status = status
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.status is not None:
            payload["status"] = self.status
        if self.detail is not None:
            payload["details"] = self.detail
        return payload


class ProviderNotFound(ProviderError):
    """Project, domain or deployment does not exist at the provider."""

    code = "not_found"


class ProviderUnauthorized(ProviderError):
    """Provider credentials are missing, invalid or lack access."""

    code = "unauthorized"


class ProviderRateLimited(ProviderError):
    """Provider throttled the request."""

    code = "rate_limited"

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.retry_after is not None:
            payload["retry_after"] = self.retry_after
        return payload


class ProviderUnavailable(ProviderError):
    """Network failure, timeout or 5xx from the provider."""

    code = "provider_unavailable"


class MissingOwnershipRecord(DomainLinkError):
    """Provider reports the ownership TXT challenge is still outstanding.

    This is not a failure: ``record`` is the TXT record the customer must
    add before verification can proceed.
    """

    code = "missing_txt_record"

    def __init__(self, domain: str, record: DnsRecord) -> None:
        super().__init__(
            f"Domain ownership not verified for {domain}. Add the required TXT record."
        )
        self.domain = domain
        self.record = record

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "domain": self.domain,
            "requiredRecords": [self.record.to_dict()],
        }


class DuplicateDomain(DomainLinkError):
    """Another project already claims this custom domain."""

    code = "duplicate_domain"

    def __init__(self, domain: str) -> None:
        super().__init__(f"Domain {domain} is already attached to another project")
        self.domain = domain

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "domain": self.domain}


class PersistenceFailure(DomainLinkError):
    """Store unreachable, or a constraint other than domain uniqueness failed."""

    code = "persistence_failure"
