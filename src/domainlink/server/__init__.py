"""HTTP server for domain attachment."""

from domainlink.server.app import DomainHandler, build_app, create_app, error_status, run_server

__all__ = ["DomainHandler", "build_app", "create_app", "error_status", "run_server"]
