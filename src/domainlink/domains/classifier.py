"""Hostname normalization and apex/subdomain classification.

The classification decides which routing record a customer must configure:
    - example.com      is an apex domain:  A records at "@"
    - app.example.com  is a subdomain:     one CNAME at "app"

Hostnames are normalized by the caller (see normalize_domain and
normalize_deployment_url) before they reach classify().
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from domainlink.core.exceptions import InvalidDomainFormat

_HOSTNAME_CHARS = re.compile(r"^[a-z0-9.-]+$")
_SCHEME = re.compile(r"^https?://")


@dataclass(frozen=True)
class Apex:
    """A domain with exactly two labels."""


@dataclass(frozen=True)
class Subdomain:
    """A domain with more than two labels.

    Attributes:
        label: The leftmost label (``app`` for ``app.example.com``).
    """

    label: str


Classification = Apex | Subdomain


def classify(hostname: str) -> Classification:
    """Classify a normalized hostname as apex or subdomain.

    Args:
        hostname: Lower-cased hostname without scheme, path or trailing dot.

    Returns:
        Apex() or Subdomain(label).

    Raises:
        InvalidDomainFormat: If the hostname has fewer than two labels or an
            empty label.

    Examples:
        >>> classify("example.com")
        Apex()
        >>> classify("blog.example.com")
        Subdomain(label='blog')
    """
    labels = hostname.split(".")
    if len(labels) < 2:
        raise InvalidDomainFormat(hostname, "hostname must have at least two labels")
    if any(not label for label in labels):
        raise InvalidDomainFormat(hostname, "hostname contains an empty label")

    if len(labels) == 2:
        return Apex()
    return Subdomain(label=labels[0])


def _strip_hostname(raw: str, *, strip_www: bool) -> str:
    host = raw.strip().lower()
    host = _SCHEME.sub("", host)
    if strip_www and host.startswith("www."):
        host = host[4:]
    if host.endswith("/"):
        host = host[:-1]

    if "/" in host:
        raise InvalidDomainFormat(raw, "hostname must not contain path segments")
    if not host or not _HOSTNAME_CHARS.match(host):
        raise InvalidDomainFormat(raw, "hostname contains invalid characters")
    if host.startswith(".") or ".." in host:
        raise InvalidDomainFormat(raw, "hostname contains an empty label")
    return host


def normalize_domain(raw: str) -> str:
    """Normalize a customer-supplied domain.

    Lower-cases, strips an http(s) scheme and one trailing slash. A leading
    ``www.`` is kept: ``www.example.com`` is a subdomain in its own right.

    Raises:
        InvalidDomainFormat: If a path remains or the hostname contains
            characters outside ``[a-z0-9.-]``.

    Examples:
        >>> normalize_domain("HTTPS://Blog.Example.com/")
        'blog.example.com'
    """
    return _strip_hostname(raw, strip_www=False)


def normalize_deployment_url(raw: str, required_suffix: str | None = None) -> str:
    """Normalize a deployment URL down to its hostname.

    Args:
        raw: URL such as ``https://my-app-x1.vercel.app/``.
        required_suffix: When set, the hostname must look like
            ``<deployment>.<scope>.<suffix>``.

    Raises:
        InvalidDomainFormat: If the URL is not a bare deployment hostname.

    Examples:
        >>> normalize_deployment_url("https://www.app-x1.deployer.app/")
        'app-x1.deployer.app'
    """
    host = _strip_hostname(raw, strip_www=True)

    if required_suffix:
        suffix = required_suffix.lower().lstrip(".")
        if not host.endswith(f".{suffix}"):
            raise InvalidDomainFormat(raw, f"deployment URL must end with '.{suffix}'")
        pattern = rf"^[a-z0-9-]+\.[a-z0-9-]+\.{re.escape(suffix)}$"
        if not re.match(pattern, host):
            raise InvalidDomainFormat(raw, "not a valid deployment hostname")

    return host


def extract_project_name(deployment_url: str) -> str:
    """Derive the provider project name from a deployment URL.

    Examples:
        >>> extract_project_name("https://aditya-portfolio-e7hah9.codepup.app")
        'aditya-portfolio-e7hah9'
    """
    host = normalize_deployment_url(deployment_url)
    name = host.split(".")[0]
    if not name:
        raise InvalidDomainFormat(deployment_url, "cannot derive a project name")
    return name
