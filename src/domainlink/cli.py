"""domainlink CLI - Command line interface."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from collections.abc import AsyncIterator

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from domainlink import __version__
from domainlink.core.config import DomainLinkConfig, get_config
from domainlink.core.exceptions import DomainLinkError, MissingOwnershipRecord
from domainlink.domains.planner import DnsRecord
from domainlink.domains.reducer import AttachmentStatus, VerificationState

console = Console()

STATUS_COLORS = {
    AttachmentStatus.UNREGISTERED: "red",
    AttachmentStatus.PENDING_OWNERSHIP: "yellow",
    AttachmentStatus.PENDING_ROUTING: "cyan",
    AttachmentStatus.VERIFIED: "green",
}


@click.group()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    help="Log level (default: warning, use --verbose for debug)",
)
@click.version_option(__version__, prog_name="domainlink")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, verbose: bool, log_level: str):
    """domainlink - Attach and verify custom domains for hosted projects.

    Examples:

        domainlink domain attach example.com --project-id p1 --deployment-url app-x1.vercel.app

        domainlink domain verify example.com --project-id p1

        domainlink domain get p1

        domainlink serve --port 7070

    Use 'domainlink COMMAND --help' for more info on specific commands.
    """
    effective_log_level = "debug" if verbose else log_level
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, effective_log_level.upper())
        ),
    )

    if config_file:
        try:
            cfg = DomainLinkConfig.from_file(config_file)
            console.print(f"Loaded config from {config_file}", style="dim")
        except Exception as e:
            console.print(f"[red]Failed to load config: {e}[/red]")
            sys.exit(1)
    else:
        cfg = get_config()

    ctx.obj = cfg


def _print_json(data: object) -> None:
    # no wrapping or markup, output must stay parseable
    console.print(json.dumps(data, indent=2), soft_wrap=True, markup=False, highlight=False)


def _fail(error: DomainLinkError) -> None:
    console.print(f"[red]Error:[/red] {error.message}")
    if isinstance(error, MissingOwnershipRecord):
        console.print(_records_table([error.record], title="Add this DNS record"))
    sys.exit(1)


def _records_table(records: list[DnsRecord], title: str = "Required DNS Records") -> Table:
    table = Table(title=title)
    table.add_column("Type", style="cyan")
    table.add_column("Host")
    table.add_column("Value", style="green")
    table.add_column("TTL", justify="right", style="dim")
    for record in records:
        table.add_row(record.kind.value, record.host, record.value, str(record.ttl))
    return table


def _state_line(state: VerificationState) -> str:
    color = STATUS_COLORS[state.status]
    ownership = "[green]Yes[/green]" if state.ownership_verified else "[yellow]No[/yellow]"
    routing = "[green]Yes[/green]" if state.routing_verified else "[yellow]No[/yellow]"
    return (
        f"[bold]Status:[/bold] [{color}]{state.status.value}[/{color}]\n"
        f"[bold]Ownership:[/bold] {ownership}\n"
        f"[bold]Routing:[/bold] {routing}"
    )


@contextlib.asynccontextmanager
async def _open_store(cfg: DomainLinkConfig) -> AsyncIterator:
    from domainlink.domains.storage import create_store

    store = create_store(cfg.storage.database_url)
    await store.initialize()
    try:
        yield store
    finally:
        await store.close()


@contextlib.asynccontextmanager
async def _open_service(cfg: DomainLinkConfig) -> AsyncIterator:
    from domainlink.domains.provider import VercelClient
    from domainlink.domains.service import DomainAttachmentService

    async with _open_store(cfg) as store, VercelClient(cfg.provider) as provider:
        yield DomainAttachmentService(
            provider,
            store,
            deployment_suffix=cfg.provider.deployment_suffix,
        )


@main.group()
def domain():
    """Attach, verify and inspect custom domains.

    Custom domains let a project be served from the customer's own hostname
    (e.g., example.com or blog.example.com) instead of its deployment URL.

    Examples:

        domainlink domain attach example.com -p p1 -d my-app-x1.vercel.app

        domainlink domain verify example.com -p p1

        domainlink domain get p1

        domainlink domain list
    """
    pass


@domain.command("attach")
@click.argument("domain_name")
@click.option("--project-id", "-p", required=True, help="Project that should serve this domain")
@click.option("--deployment-url", "-d", required=True, help="Deployment URL of the project")
@click.option("--project-name", help="Provider project name (default: first label of the deployment URL)")
@click.pass_obj
def domain_attach(
    cfg: DomainLinkConfig,
    domain_name: str,
    project_id: str,
    deployment_url: str,
    project_name: str | None,
):
    """Attach a custom domain to a project.

    Prints the DNS records the domain owner must configure.
    """
    asyncio.run(_domain_attach_async(cfg, domain_name, project_id, deployment_url, project_name))


async def _domain_attach_async(
    cfg: DomainLinkConfig,
    domain_name: str,
    project_id: str,
    deployment_url: str,
    project_name: str | None,
):
    """Async implementation of domain attach command."""
    try:
        async with _open_service(cfg) as service:
            result = await service.attach(project_id, deployment_url, domain_name, project_name)
    except DomainLinkError as e:
        _fail(e)
        return

    record = result.record
    console.print(
        Panel(
            f"[bold]Domain:[/bold] {record.custom_domain}\n"
            f"[bold]Project:[/bold] {record.project_id} ({record.project_name})\n"
            f"{_state_line(result.state)}\n\n"
            f"After configuring DNS, run:\n"
            f"  [cyan]domainlink domain verify {record.custom_domain} -p {record.project_id}[/cyan]",
            title="Domain Attached",
            border_style=STATUS_COLORS[result.status],
        )
    )
    if record.required_dns:
        console.print(_records_table(record.required_dns))


@domain.command("verify")
@click.argument("domain_name")
@click.option("--project-id", "-p", required=True, help="Project the domain is attached to")
@click.option("--replan", is_flag=True, help="Recompute the required DNS records")
@click.pass_obj
def domain_verify(cfg: DomainLinkConfig, domain_name: str, project_id: str, replan: bool):
    """Re-check ownership and routing for an attached domain."""
    asyncio.run(_domain_verify_async(cfg, domain_name, project_id, replan))


async def _domain_verify_async(
    cfg: DomainLinkConfig,
    domain_name: str,
    project_id: str,
    replan: bool,
):
    """Async implementation of domain verify command."""
    console.print(f"Verifying [cyan]{domain_name}[/cyan]...", style="yellow")
    try:
        async with _open_service(cfg) as service:
            result = await service.verify(project_id, domain_name, replan=replan)
    except DomainLinkError as e:
        _fail(e)
        return

    console.print(
        Panel(
            f"[bold]Domain:[/bold] {result.domain}\n{_state_line(result.state)}",
            title="Verification Status",
            border_style=STATUS_COLORS[result.status],
        )
    )
    if result.current_records:
        console.print(_records_table(result.current_records, title="Current DNS Records"))
    if result.required_dns:
        console.print(_records_table(result.required_dns))
    if not result.persisted:
        console.print(f"[yellow]No attachment stored for project {project_id}[/yellow]")
    if result.status != AttachmentStatus.VERIFIED:
        sys.exit(1)


@domain.command("get")
@click.argument("project_id")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def domain_get(cfg: DomainLinkConfig, project_id: str, json_output: bool):
    """Show the domain attached to a project."""
    asyncio.run(_domain_get_async(cfg, project_id, json_output))


async def _domain_get_async(cfg: DomainLinkConfig, project_id: str, json_output: bool):
    """Async implementation of domain get command."""
    try:
        async with _open_store(cfg) as store:
            record = await store.get(project_id)
    except DomainLinkError as e:
        _fail(e)
        return

    if record is None:
        if json_output:
            _print_json({"exists": False})
            return
        console.print(f"[red]No domain attached to project:[/red] {project_id}")
        sys.exit(1)

    if json_output:
        data = record.to_dict()
        if record.fully_verified:
            data["required_dns"] = None
        _print_json({"exists": True, **data})
        return

    state = VerificationState(record.ownership_verified, record.routing_verified)
    console.print(
        Panel(
            f"[bold]Domain:[/bold] {record.custom_domain}\n"
            f"[bold]Project:[/bold] {record.project_id} ({record.project_name})\n"
            f"[bold]Deployment:[/bold] {record.deployment_url}\n"
            f"{_state_line(state)}\n"
            f"[bold]Updated At:[/bold] {record.updated_at.strftime('%Y-%m-%d %H:%M')}",
            title=f"Domain: {record.custom_domain}",
            border_style=STATUS_COLORS[state.status],
        )
    )
    if not record.fully_verified and record.required_dns:
        console.print(_records_table(record.required_dns))


@domain.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_obj
def domain_list(cfg: DomainLinkConfig, json_output: bool):
    """List all attached domains."""
    asyncio.run(_domain_list_async(cfg, json_output))


async def _domain_list_async(cfg: DomainLinkConfig, json_output: bool):
    """Async implementation of domain list command."""
    try:
        async with _open_store(cfg) as store:
            records = await store.list_all()
    except DomainLinkError as e:
        _fail(e)
        return

    if json_output:
        _print_json([r.to_dict() for r in records])
        return

    if not records:
        console.print("[dim]No domains attached[/dim]")
        return

    table = Table(title="Attached Domains")
    table.add_column("Domain", style="cyan")
    table.add_column("Project", style="dim")
    table.add_column("Status", justify="center")
    table.add_column("Updated At")

    for record in records:
        status = VerificationState(record.ownership_verified, record.routing_verified).status
        color = STATUS_COLORS[status]
        table.add_row(
            record.custom_domain,
            record.project_id[:12] + "..." if len(record.project_id) > 12 else record.project_id,
            f"[{color}]{status.value}[/{color}]",
            record.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@domain.command("alias")
@click.argument("domain_name")
@click.option("--deployment-url", "-d", required=True, help="Deployment to point the domain at")
@click.pass_obj
def domain_alias(cfg: DomainLinkConfig, domain_name: str, deployment_url: str):
    """Point a domain at one specific deployment."""
    asyncio.run(_domain_alias_async(cfg, domain_name, deployment_url))


async def _domain_alias_async(cfg: DomainLinkConfig, domain_name: str, deployment_url: str):
    """Async implementation of domain alias command."""
    try:
        async with _open_service(cfg) as service:
            alias = await service.alias(deployment_url, domain_name)
    except DomainLinkError as e:
        _fail(e)
        return

    console.print(f"[green]Domain aliased:[/green] {alias.alias} -> {deployment_url}")


@main.group()
def config():
    """View configuration settings.

    All settings can be configured via environment variables with the
    DOMAINLINK_ prefix, or from a file passed with --config.

    Examples:

        domainlink config show

        domainlink config show --json --section provider
    """
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--section", "-s", help="Show only specific section (provider, storage, server)")
@click.pass_obj
def config_show(cfg: DomainLinkConfig, json_output: bool, section: str | None):
    """Show current configuration settings.

    The provider token is masked.
    """
    display = cfg.to_display_dict()

    if section:
        section = section.lower()
        if section not in display:
            console.print(f"[red]Unknown section:[/red] {section}")
            console.print(f"[dim]Available: {', '.join(display.keys())}[/dim]")
            sys.exit(1)
        display = {section: display[section]}

    if json_output:
        _print_json(display)
        return

    console.print("[bold]Current Configuration[/bold]\n")

    for section_name, settings in display.items():
        table = Table(title=section_name.title())
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Env Variable", style="dim")

        for key, value in settings.items():
            env_var = f"DOMAINLINK_{key.upper()}"
            value_str = str(value) if value is not None else "[dim]None[/dim]"
            table.add_row(key, value_str, env_var)

        console.print(table)
        console.print()


@main.command()
@click.option("--host", default=None, help="Bind host (default: DOMAINLINK_SERVER_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Bind port (default: DOMAINLINK_SERVER_PORT)")
@click.pass_obj
def serve(cfg: DomainLinkConfig, host: str | None, port: int | None):
    """Run the HTTP server."""
    from domainlink.server.app import run_server

    if host is not None:
        cfg.server.server_host = host
    if port is not None:
        cfg.server.server_port = port

    console.print(
        f"Serving on [cyan]http://{cfg.server.server_host}:{cfg.server.server_port}[/cyan]",
        style="yellow",
    )
    run_server(cfg)


if __name__ == "__main__":
    main()
