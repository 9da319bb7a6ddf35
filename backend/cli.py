"""
POS Core CLI.

Command-line interface for common operations.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="pos-core",
    help="POS catalog pricing and order engine CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================


@app.command()
def init_db():
    """Create all database tables."""
    from rest_api.models import Base
    from shared.infrastructure.db import engine

    console.print("[blue]Creating tables...[/blue]")
    Base.metadata.create_all(bind=engine)
    console.print(f"[green]✓ {len(Base.metadata.tables)} tables created/verified[/green]")


@app.command()
def seed_demo(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding outside development"),
):
    """Seed a demo tenant with locations, catalog and a combo."""
    from rest_api.models import Base
    from rest_api.seed import seed
    from shared.config.settings import settings
    from shared.infrastructure.db import engine, get_db_context

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    Base.metadata.create_all(bind=engine)
    with get_db_context() as db:
        tenant = seed(db)
        console.print(f"[green]✓ Demo tenant ready (id={tenant.id}, slug={tenant.slug})[/green]")


# =============================================================================
# Catalog Commands
# =============================================================================


@app.command()
def price(
    product_id: int = typer.Argument(..., help="Product ID"),
    tenant_id: int = typer.Option(..., "--tenant", "-t", help="Tenant ID"),
    location_id: Optional[int] = typer.Option(None, "--location", "-l", help="Location ID"),
):
    """Show the effective price of a product."""
    from rest_api.services.domain import PricingService
    from shared.infrastructure.db import get_db_context
    from shared.security.auth import RequestContext
    from shared.utils.exceptions import AppException

    ctx = RequestContext(tenant_id=tenant_id, user_id=0)
    with get_db_context() as db:
        try:
            result = PricingService(db).get_effective_price(ctx, product_id, location_id)
        except AppException as e:
            console.print(f"[red]✗ {e.detail}[/red]")
            raise typer.Exit(1)

    table = Table(title=f"Product {product_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Location", str(location_id or "-"))
    table.add_row("Base price", str(result.base_price))
    table.add_row("Effective price", str(result.price))
    table.add_row("Location specific", "yes" if result.is_location_specific else "no")
    console.print(table)


@app.command()
def order_stats(
    tenant_id: int = typer.Option(..., "--tenant", "-t", help="Tenant ID"),
    location_id: Optional[int] = typer.Option(None, "--location", "-l", help="Location ID"),
):
    """Show today's order statistics."""
    from rest_api.services.domain import OrderService
    from shared.infrastructure.db import get_db_context
    from shared.security.auth import RequestContext

    ctx = RequestContext(tenant_id=tenant_id, user_id=0)
    with get_db_context() as db:
        stats = OrderService(db).get_stats(ctx, location_id=location_id)

    table = Table(title="Orders Today")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Total orders", str(stats.total_orders))
    table.add_row("Open orders", str(stats.open_orders))
    table.add_row("Completed orders", str(stats.completed_orders))
    table.add_row("Paid sales", str(stats.total_sales))
    console.print(table)


# =============================================================================
# Auth Commands
# =============================================================================


@app.command()
def issue_token(
    tenant_id: int = typer.Option(..., "--tenant", "-t", help="Tenant ID"),
    user_id: int = typer.Option(..., "--user", "-u", help="User ID (sub claim)"),
    location_id: Optional[int] = typer.Option(None, "--location", "-l", help="Default location ID"),
    email: Optional[str] = typer.Option(None, "--email", help="User email"),
    ttl: int = typer.Option(3600, help="Token lifetime in seconds"),
):
    """Issue a signed access token for local testing."""
    from shared.security.auth import sign_jwt

    claims = {"sub": str(user_id), "tenant_id": tenant_id}
    if location_id is not None:
        claims["location_id"] = location_id
    if email:
        claims["email"] = email
    console.print(sign_jwt(claims, ttl_seconds=ttl))


# =============================================================================
# Utility Commands
# =============================================================================


@app.command()
def show_config():
    """Show the active configuration (secrets masked)."""
    from shared.config.settings import settings

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.model_dump().items():
        if "secret" in name:
            value = "***"
        elif name == "database_url" and "@" in str(value):
            value = str(value).split("@", 1)[1]
        table.add_row(name, str(value))
    console.print(table)

    problems = settings.validate_production_secrets()
    for problem in problems:
        console.print(f"[yellow]! {problem}[/yellow]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port (defaults to API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Run the REST API with uvicorn."""
    import uvicorn

    from shared.config.settings import settings

    uvicorn.run("rest_api.main:app", host=host, port=port or settings.api_port, reload=reload)


@app.command()
def version():
    """Show CLI version."""
    console.print("[bold]POS Core CLI[/bold] v0.1.0")


if __name__ == "__main__":
    app()
