"""Core."""

from .config import (
    DomainLinkConfig,
    ProviderSettings,
    ServerSettings,
    StorageSettings,
    clear_config,
    get_config,
    load_config_from_file,
)
from .exceptions import (
    DomainLinkError,
    DuplicateDomain,
    InvalidDomainFormat,
    MissingField,
    MissingOwnershipRecord,
    PersistenceFailure,
    ProviderError,
    ProviderNotFound,
    ProviderRateLimited,
    ProviderUnauthorized,
    ProviderUnavailable,
)

__all__ = [
    "DomainLinkConfig",
    "ProviderSettings",
    "ServerSettings",
    "StorageSettings",
    "clear_config",
    "get_config",
    "load_config_from_file",
    "DomainLinkError",
    "DuplicateDomain",
    "InvalidDomainFormat",
    "MissingField",
    "MissingOwnershipRecord",
    "PersistenceFailure",
    "ProviderError",
    "ProviderNotFound",
    "ProviderRateLimited",
    "ProviderUnauthorized",
    "ProviderUnavailable",
]
