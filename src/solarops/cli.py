"""Command-line interface for SolarOps."""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


def run_async(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


def load_settings(config_path: str | None = None):
    """Load and validate settings.

    Args:
        config_path: Optional path to .env file.

    Returns:
        Validated Settings object.
    """
    from solarops.config.logging import configure_logging
    from solarops.config.settings import Settings, get_settings

    try:
        if config_path:
            settings = Settings(_env_file=config_path)
        else:
            get_settings.cache_clear()
            settings = get_settings()
        configure_logging(settings)
        return settings
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("\n[yellow]Hint:[/yellow] Set SOLAROPS_DATABASE_URL or create a .env file")
        raise SystemExit(1) from None


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to .env configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """SolarOps - Solar plant work orders and vendor sync."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command()
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Initialize the database schema."""
    from solarops.config.logging import get_logger
    from solarops.db.engine import create_engine, create_tables

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print("[bold]Initializing database...[/bold]")

    try:
        engine = create_engine(settings)
        create_tables(engine)
        console.print("[green]Database initialized successfully![/green]")
        logger.info("Database initialized", url=settings.database_url)
    except Exception as e:
        console.print(f"[red]Failed to initialize database:[/red] {e}")
        logger.error("Database initialization failed", error=str(e))
        raise SystemExit(1) from None


@cli.group()
def org() -> None:
    """Manage organizations."""


@org.command("add")
@click.argument("name")
@click.option("--interval", type=int, default=None, help="Auto sync interval in minutes")
@click.option("--no-auto-sync", is_flag=True, help="Disable scheduled plant sync")
@click.pass_context
def org_add(ctx: click.Context, name: str, interval: int | None, no_auto_sync: bool) -> None:
    """Create an organization."""
    from solarops.db.engine import create_engine, get_session
    from solarops.db.models import Organization
    from solarops.db.repositories import OrganizationRepository

    settings = load_settings(ctx.obj.get("config_path"))

    try:
        engine = create_engine(settings)
        with get_session(engine) as session:
            organization = OrganizationRepository(session).add(
                Organization(
                    name=name,
                    auto_sync_enabled=not no_auto_sync,
                    sync_interval_minutes=interval or settings.default_sync_interval_minutes,
                )
            )
            org_id = organization.id
        console.print(f"[green]Created organization {org_id}:[/green] {name}")
    except Exception as e:
        console.print(f"[red]Failed to create organization:[/red] {e}")
        raise SystemExit(1) from None


@cli.group()
def vendor() -> None:
    """Manage vendor integrations."""


@vendor.command("add")
@click.argument("name")
@click.option("--type", "vendor_type", required=True, help="Vendor type, e.g. SOLARMAN")
@click.option("--org", "org_id", type=int, help="Organization the vendor's plants belong to")
@click.option("--credentials", default="{}", help="Credentials as a JSON object")
@click.option("--api-base-url", default=None, help="Override the vendor API base URL")
@click.pass_context
def vendor_add(
    ctx: click.Context,
    name: str,
    vendor_type: str,
    org_id: int | None,
    credentials: str,
    api_base_url: str | None,
) -> None:
    """Register a vendor integration."""
    from solarops.db.engine import create_engine, get_session
    from solarops.db.models import Vendor
    from solarops.db.repositories import VendorRepository
    from solarops.vendors.factory import is_supported, supported_types

    settings = load_settings(ctx.obj.get("config_path"))

    if not is_supported(vendor_type):
        console.print(
            f"[red]Unsupported vendor type:[/red] {vendor_type} "
            f"(supported: {', '.join(supported_types())})"
        )
        raise SystemExit(1)

    try:
        parsed_credentials = json.loads(credentials)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid credentials JSON:[/red] {e}")
        raise SystemExit(1) from None

    try:
        engine = create_engine(settings)
        with get_session(engine) as session:
            created = VendorRepository(session).add(
                Vendor(
                    name=name,
                    vendor_type=vendor_type.upper(),
                    org_id=org_id,
                    credentials=parsed_credentials,
                    api_base_url=api_base_url,
                )
            )
            vendor_id = created.id
        console.print(f"[green]Created vendor {vendor_id}:[/green] {name}")
    except Exception as e:
        console.print(f"[red]Failed to create vendor:[/red] {e}")
        raise SystemExit(1) from None


@vendor.command("plants")
@click.argument("vendor_id", type=int)
@click.pass_context
def vendor_plants(ctx: click.Context, vendor_id: int) -> None:
    """List plants reported by a vendor API, without storing them."""
    from solarops.db.engine import create_engine, get_session
    from solarops.db.repositories import VendorRepository
    from solarops.vendors.base import VendorConfig
    from solarops.vendors.factory import create_adapter
    from solarops.vendors.token_store import DatabaseTokenStore

    settings = load_settings(ctx.obj.get("config_path"))

    async def _list():
        engine = create_engine(settings)
        with get_session(engine) as session:
            record = VendorRepository(session).get_by_id(vendor_id)
            if record is None:
                raise click.ClickException(f"Vendor {vendor_id} not found")
            config = VendorConfig.model_validate(record)
            async with create_adapter(config, settings, DatabaseTokenStore(session)) as adapter:
                return await adapter.list_plants()

    try:
        plants = run_async(_list())
    except Exception as e:
        console.print(f"[red]Failed to list vendor plants:[/red] {e}")
        raise SystemExit(1) from None

    table = Table(title=f"Vendor {vendor_id} plants")
    table.add_column("External ID", style="cyan")
    table.add_column("Name")
    table.add_column("Capacity (kW)", justify="right")
    table.add_column("Power (kW)", justify="right")
    table.add_column("Network")

    for plant in plants:
        power = plant.metadata.get("currentPowerKw")
        table.add_row(
            plant.external_id or "-",
            plant.name or "-",
            f"{plant.capacity_kw or 0:.1f}",
            f"{power:.2f}" if power is not None else "-",
            plant.metadata.get("networkStatus") or "-",
        )

    console.print(table)
    console.print(f"\n{len(plants)} plants")


@cli.command()
@click.option("--vendor", "-v", "vendor_id", type=int, help="Sync specific vendor only")
@click.option("--force", is_flag=True, help="Ignore organization sync schedules")
@click.option("--alerts", is_flag=True, help="Sync vendor alerts instead of plants")
@click.pass_context
def sync(ctx: click.Context, vendor_id: int | None, force: bool, alerts: bool) -> None:
    """Synchronize vendor plant inventories or alerts into the database."""
    from solarops.config.logging import get_logger
    from solarops.db.engine import create_engine, create_tables
    from solarops.sync.orchestrator import SyncOrchestrator

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    noun = "alerts" if alerts else "plants"
    console.print(f"[bold]Starting {noun[:-1]} sync...[/bold]")

    async def _sync():
        engine = create_engine(settings)
        create_tables(engine)  # Ensure tables exist

        orchestrator = SyncOrchestrator(engine, settings)
        if alerts:
            if vendor_id:
                return [await orchestrator.sync_vendor_alerts(vendor_id)]
            return (await orchestrator.sync_all_alerts()).results
        if vendor_id:
            return [await orchestrator.sync_vendor(vendor_id)]
        summary = await orchestrator.sync_all(force=force)
        return summary.results

    try:
        results = run_async(_sync())
    except Exception as e:
        console.print(f"[red]Sync failed:[/red] {e}")
        logger.error("Sync failed", error=str(e))
        raise SystemExit(1) from None

    table = Table(title=f"{noun.capitalize()} Sync Results")
    table.add_column("Vendor ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Synced", justify="right")
    table.add_column("Created", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Duration")

    success_count = 0
    total_synced = 0

    for result in results:
        report = result.report
        if result.success:
            success_count += 1
            status_str = "[green]Success[/green]" if report.success else "[yellow]Partial[/yellow]"
        else:
            status_str = "[red]Failed[/red]"
        total_synced += report.synced if report else 0

        table.add_row(
            str(result.vendor_id),
            result.vendor_name or "Unknown",
            status_str,
            str(report.synced) if report else "-",
            str(report.created) if report else "-",
            str(report.updated) if report else "-",
            str(report.error_count) if report else "-",
            f"{result.duration_seconds:.1f}s",
        )

    console.print(table)
    console.print(
        f"\n[bold]Summary:[/bold] {success_count}/{len(results)} vendors synced, "
        f"{total_synced} {noun}"
    )

    for result in results:
        if result.error:
            console.print(f"\n[red]Vendor {result.vendor_id} failed:[/red] {result.error}")
        elif result.report and result.report.errors:
            console.print(f"\n[red]Errors for vendor {result.vendor_id}:[/red]")
            for error in result.report.errors:
                console.print(f"  - {error}")

    logger.info(
        "Sync complete", kind=noun, vendors=len(results), successful=success_count, synced=total_synced
    )


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show sync status for all vendors."""
    from solarops.config.logging import get_logger
    from solarops.db.engine import create_engine
    from solarops.sync.orchestrator import SyncOrchestrator

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    try:
        statuses = SyncOrchestrator(create_engine(settings), settings).get_sync_status()
    except Exception as e:
        console.print(f"[red]Failed to get status:[/red] {e}")
        logger.error("Status check failed", error=str(e))
        raise SystemExit(1) from None

    if not statuses:
        console.print("[yellow]No vendors found. Add one with 'solarops vendor add'.[/yellow]")
        return

    table = Table(title="Vendor Sync Status")
    table.add_column("Vendor ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type", no_wrap=True)
    table.add_column("Org")
    table.add_column("Active")
    table.add_column("Plants", justify="right")
    table.add_column("Last Sync")
    table.add_column("Alerts", justify="right")
    table.add_column("Last Alert Sync")

    for info in statuses:
        table.add_row(
            str(info["vendor_id"]),
            info["vendor_name"],
            info["vendor_type"],
            str(info["org_id"]) if info["org_id"] is not None else "[yellow]unassigned[/yellow]",
            "yes" if info["is_active"] else "no",
            str(info["plants"]),
            _format_time(info["last_synced_at"]),
            str(info["alerts"]),
            _format_time(info["last_alert_synced_at"]),
        )

    console.print(table)
    logger.info("Status displayed", vendors=len(statuses))


@cli.group()
def workorder() -> None:
    """Manage work orders."""


@workorder.command("transitions")
@click.argument("status")
def workorder_transitions(status: str) -> None:
    """Show the statuses a work order in STATUS can move to."""
    from solarops.workorders.status_machine import WorkOrderStatus, get_next_valid_statuses

    if status.upper() not in WorkOrderStatus.__members__:
        console.print(f"[red]Unknown status:[/red] {status}")
        raise SystemExit(1)

    next_statuses = get_next_valid_statuses(status.upper())
    if not next_statuses:
        console.print(f"[yellow]{status.upper()} is terminal[/yellow]")
        return
    for next_status in next_statuses:
        console.print(f"  {status.upper()} -> [cyan]{next_status}[/cyan]")


@workorder.command("create")
@click.argument("title")
@click.option("--plant", "-p", "plant_ids", type=int, multiple=True, required=True, help="Plant ID")
@click.option("--priority", type=click.Choice(["LOW", "MEDIUM", "HIGH"]), default="MEDIUM")
@click.option("--description", default=None)
@click.pass_context
def workorder_create(
    ctx: click.Context,
    title: str,
    plant_ids: tuple[int, ...],
    priority: str,
    description: str | None,
) -> None:
    """Create a work order for one or more plants."""
    from solarops.auth.permissions import SYSTEM_PRINCIPAL
    from solarops.db.engine import create_engine, get_session
    from solarops.workorders.service import WorkOrderService

    settings = load_settings(ctx.obj.get("config_path"))

    try:
        with get_session(create_engine(settings)) as session:
            work_order = WorkOrderService(session).create_work_order(
                SYSTEM_PRINCIPAL,
                title,
                plant_ids,
                description=description,
                priority=priority,
            )
            work_order_id = work_order.id
        console.print(f"[green]Created work order {work_order_id}[/green]")
    except Exception as e:
        console.print(f"[red]Failed to create work order:[/red] {e}")
        raise SystemExit(1) from None


@workorder.command("set-status")
@click.argument("work_order_id", type=int)
@click.argument("status")
@click.pass_context
def workorder_set_status(ctx: click.Context, work_order_id: int, status: str) -> None:
    """Move a work order to STATUS."""
    from solarops.auth.permissions import SYSTEM_PRINCIPAL
    from solarops.db.engine import create_engine, get_session
    from solarops.workorders.service import WorkOrderService

    settings = load_settings(ctx.obj.get("config_path"))

    try:
        with get_session(create_engine(settings)) as session:
            work_order = WorkOrderService(session).change_status(
                SYSTEM_PRINCIPAL, work_order_id, status.upper()
            )
            new_status = work_order.status
        console.print(f"[green]Work order {work_order_id} is now {new_status}[/green]")
    except Exception as e:
        console.print(f"[red]Failed to change status:[/red] {e}")
        raise SystemExit(1) from None


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
