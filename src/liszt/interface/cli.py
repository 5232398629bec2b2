"""
Liszt CLI - Command-line interface.

Commands:
- liszt buildings → List buildings
- liszt add-building "Name" → Register a building
- liszt units → List units
- liszt add-unit "4B" --building ID → Register a unit
- liszt residents UNIT_ID → List a unit's residents
- liszt add-resident FIRST LAST → Register a resident
- liszt move RESIDENT_ID UNIT_ID → Move a resident
- liszt remove KIND ID → Deregister an entity
- liszt serve → Run the HTTP API
- liszt status → Show configuration
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from liszt.core.config import settings, setup_logging
from liszt.core.context import RequestContext
from liszt.core.errors import RegistryError
from liszt.core.ids import id_timestamp
from liszt.core.types import Building, EntityKind, Resident, Unit
from liszt.storage.registrar import Registrar, create_registrar

app = typer.Typer(
    name="liszt",
    help="Liszt - Registry of buildings, units and residents",
    no_args_is_help=True,
)
console = Console()


def get_registrar() -> Registrar:
    setup_logging()
    return create_registrar(settings)


def new_context() -> RequestContext:
    return RequestContext.with_timeout(settings.request_timeout)


def fail(error: RegistryError) -> None:
    console.print(f"[red]Error: {error.message}[/red]")
    raise typer.Exit(code=1)


def created(entity_id: str) -> str:
    return id_timestamp(entity_id).strftime("%Y-%m-%d %H:%M")


@app.command()
def buildings():
    """List buildings."""
    with get_registrar() as registrar:
        try:
            building_list = registrar.list_buildings(new_context())
        except RegistryError as e:
            fail(e)
    
    if not building_list:
        console.print("[dim]No buildings found[/dim]")
        return
    
    table = Table(title="Buildings")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Registered", style="green")
    for building in building_list:
        table.add_row(building.id, building.name, created(building.id))
    console.print(table)


@app.command("add-building")
def add_building(
    name: str = typer.Argument(..., help="Building name"),
):
    """Register a building."""
    with get_registrar() as registrar:
        try:
            building = registrar.register_building(new_context(), Building(name=name))
        except RegistryError as e:
            fail(e)
    
    console.print(f"[green]✓ Registered building[/green] {building.name} ({building.id})")


@app.command()
def units(
    building: Optional[str] = typer.Option(None, "--building", "-b", help="Only units in this building"),
):
    """List units."""
    with get_registrar() as registrar:
        try:
            unit_list = registrar.list_units(new_context(), building_id=building)
        except RegistryError as e:
            fail(e)
    
    if not unit_list:
        console.print("[dim]No units found[/dim]")
        return
    
    table = Table(title="Units")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Building", style="dim")
    for unit in unit_list:
        table.add_row(unit.id, unit.name, unit.building_id or "-")
    console.print(table)


@app.command("add-unit")
def add_unit(
    name: str = typer.Argument(..., help="Unit name, unique across the registry"),
    building: Optional[str] = typer.Option(None, "--building", "-b", help="Building ID"),
):
    """Register a unit."""
    with get_registrar() as registrar:
        try:
            unit = registrar.register_unit(new_context(), Unit(name=name, building_id=building))
        except RegistryError as e:
            fail(e)
    
    console.print(f"[green]✓ Registered unit[/green] {unit.name} ({unit.id})")


@app.command()
def residents(
    unit_id: str = typer.Argument(..., help="Unit ID"),
):
    """List the residents of a unit."""
    with get_registrar() as registrar:
        try:
            ctx = new_context()
            unit = registrar.get_unit_by_id(ctx, unit_id)
            resident_list = registrar.list_unit_residents(ctx, unit_id)
        except RegistryError as e:
            fail(e)
    
    if unit is None:
        console.print(f"[red]Unit {unit_id} not found[/red]")
        raise typer.Exit(code=1)
    
    if not resident_list:
        console.print(f"[dim]No residents in {unit.name}[/dim]")
        return
    
    table = Table(title=f"Residents of {unit.name}")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    for resident in resident_list:
        table.add_row(resident.id, resident.full_name or "-")
    console.print(table)


@app.command("add-resident")
def add_resident(
    firstname: str = typer.Argument(..., help="First name"),
    lastname: str = typer.Argument(..., help="Last name"),
    middlename: str = typer.Option("", "--middle", "-m", help="Middle name"),
    unit: Optional[str] = typer.Option(None, "--unit", "-u", help="Unit ID to assign"),
):
    """Register a resident."""
    resident = Resident(firstname=firstname, middlename=middlename, lastname=lastname, unit_id=unit)
    with get_registrar() as registrar:
        try:
            resident = registrar.register_resident(new_context(), resident)
        except RegistryError as e:
            fail(e)
    
    console.print(f"[green]✓ Registered resident[/green] {resident.full_name} ({resident.id})")


@app.command()
def move(
    resident_id: str = typer.Argument(..., help="Resident ID"),
    unit_id: str = typer.Argument(..., help="Destination unit ID"),
):
    """Move a resident into a unit."""
    with get_registrar() as registrar:
        try:
            registrar.move_resident(new_context(), resident_id, unit_id)
        except RegistryError as e:
            fail(e)
    
    console.print(f"[green]✓ Moved[/green] {resident_id} → {unit_id}")


@app.command()
def remove(
    kind: EntityKind = typer.Argument(..., help="building, unit or resident"),
    entity_id: str = typer.Argument(..., help="ID to deregister"),
):
    """Deregister a building, unit or resident."""
    with get_registrar() as registrar:
        operations = {
            EntityKind.BUILDING: registrar.deregister_building,
            EntityKind.UNIT: registrar.deregister_unit,
            EntityKind.RESIDENT: registrar.deregister_resident,
        }
        try:
            operations[kind](new_context(), entity_id)
        except RegistryError as e:
            fail(e)
    
    console.print(f"[green]✓ Deregistered {kind.value}[/green] {entity_id}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port"),
):
    """Run the HTTP API."""
    import uvicorn
    
    from liszt.interface.api import create_app
    
    uvicorn.run(create_app(get_registrar(), settings), host=host or settings.api_host, port=port or settings.api_port)


@app.command()
def status():
    """Show the active configuration."""
    console.print("\n[bold]Liszt Status[/bold]\n")
    console.print(f"Backend: {settings.backend}")
    console.print(f"Data directory: {settings.data_dir}")
    if settings.backend == "sql":
        console.print(f"Database: {settings.database_path}")
    else:
        console.print(f"Documents: {settings.documents_dir}")
        console.print(f"Soft delete: {'on' if settings.soft_delete else 'off'}")
    console.print(f"Request timeout: {settings.request_timeout}s")


if __name__ == "__main__":
    app()
