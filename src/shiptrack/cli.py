"""CLI entrypoint for shiptrack."""

import json
import sys

import click
from rich.console import Console
from tabulate import tabulate

from . import __version__
from .config import Settings, load_settings
from .exceptions import ShiptrackError
from .logging import setup_logging
from .notifications import ShipmentNotifier, build_email_sender
from .service import ShipmentService
from .storage import create_store

console = Console()


def _setup_logging(debug: bool = False) -> Settings:
    """Load application settings and setup logging."""
    settings = load_settings()
    if debug:
        settings.debug = True
        settings.logging.level = "DEBUG"
    setup_logging(settings=settings)
    return settings


def _service(ctx) -> ShipmentService:
    settings = ctx.obj['settings']
    notifier = ShipmentNotifier.from_settings(settings) if ctx.obj['notify'] else None
    return ShipmentService(create_store(settings), notifier)


def _fail(error: Exception):
    console.print(f"[red]Error: {error}[/red]")
    sys.exit(1)


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--no-email', is_flag=True, help='Do not send notification emails')
@click.pass_context
def main(ctx, debug, no_email):
    """Shipment tracking service and admin tools."""
    ctx.ensure_object(dict)
    try:
        ctx.obj['settings'] = _setup_logging(debug)
    except ShiptrackError as e:
        _fail(e)
    ctx.obj['notify'] = not no_email


@main.command()
@click.option('--host', help='Interface to bind (default from settings)')
@click.option('--port', type=int, help='Port to listen on (default from settings)')
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP server."""
    from .web.server import run_server

    settings = ctx.obj['settings']
    run_server(settings, host=host, port=port)


@main.command()
def version():
    """Show version information."""
    console.print(f"shiptrack version {__version__}")


@main.group()
def shipments():
    """Shipment management commands."""
    pass


@shipments.command('list')
@click.option('--status', help='Only show shipments with this status')
@click.pass_context
def list_shipments(ctx, status):
    """List shipments, newest first."""
    try:
        items = _service(ctx).list_shipments(status)
    except ShiptrackError as e:
        _fail(e)

    if not items:
        click.echo("No shipments found.")
        return

    table_data = []
    for shipment in items:
        table_data.append([
            shipment.id,
            shipment.tracking_id,
            shipment.status.value,
            shipment.receiver.name or '-',
            shipment.destination.label or '-',
            shipment.last_updated.strftime('%Y-%m-%d %H:%M') if shipment.last_updated else '-',
        ])

    headers = ['ID', 'Tracking ID', 'Status', 'Receiver', 'Destination', 'Updated']
    click.echo(tabulate(table_data, headers=headers, tablefmt='grid'))


@shipments.command('show')
@click.argument('tracking_id')
@click.pass_context
def show_shipment(ctx, tracking_id):
    """Show a shipment and its tracking history."""
    try:
        shipment = _service(ctx).track(tracking_id)
    except ShiptrackError as e:
        _fail(e)

    click.echo(f"\n=== {shipment.tracking_id} ({shipment.id}) ===")
    click.echo(f"Status: {shipment.status.label}")
    click.echo(f"Origin: {shipment.origin.label or '-'}")
    click.echo(f"Destination: {shipment.destination.label or '-'}")
    click.echo(f"Receiver: {shipment.receiver.name or '-'} <{shipment.receiver.email or '-'}>")
    if shipment.estimated_delivery_date:
        click.echo(f"Estimated delivery: {shipment.estimated_delivery_date:%Y-%m-%d}")

    if shipment.tracking_history:
        click.echo("\nHistory:")
        table_data = [
            [
                event.timestamp.strftime('%Y-%m-%d %H:%M') if event.timestamp else '-',
                event.status,
                event.location,
                event.notes,
            ]
            for event in shipment.tracking_history
        ]
        click.echo(tabulate(table_data, headers=['When', 'Status', 'Location', 'Notes'], tablefmt='grid'))


@shipments.command('create')
@click.argument('payload_file', type=click.File('r'))
@click.pass_context
def create_shipment(ctx, payload_file):
    """Create a shipment from a JSON file ('-' reads stdin)."""
    try:
        payload = json.load(payload_file)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")

    try:
        shipment = _service(ctx).create_shipment(payload)
    except ShiptrackError as e:
        _fail(e)

    console.print(f"[green]Shipment created: {shipment.tracking_id} (ID {shipment.id})[/green]")


@shipments.command('status')
@click.argument('shipment_id')
@click.argument('status')
@click.option('--location', help='Where the shipment is now')
@click.option('--notes', help='Note stored with the history entry')
@click.pass_context
def set_status(ctx, shipment_id, status, location, notes):
    """Change the status of a shipment."""
    payload = {'status': status}
    if location:
        payload['currentLocation'] = location
    if notes:
        payload['notes'] = notes

    try:
        shipment = _service(ctx).update_shipment(shipment_id, payload)
    except ShiptrackError as e:
        _fail(e)

    console.print(f"[green]{shipment.tracking_id} is now {shipment.status.label}[/green]")


@shipments.command('delete')
@click.argument('shipment_id')
@click.confirmation_option(prompt='Delete this shipment?')
@click.pass_context
def delete_shipment(ctx, shipment_id):
    """Delete a shipment."""
    try:
        _service(ctx).delete_shipment(shipment_id)
    except ShiptrackError as e:
        _fail(e)

    console.print(f"[green]Shipment {shipment_id} deleted[/green]")


@main.group()
def mail():
    """Email commands."""
    pass


@mail.command('test')
@click.argument('to')
@click.pass_context
def test_email(ctx, to):
    """Send a test email through the provider chain."""
    settings = ctx.obj['settings']
    notifier = ShipmentNotifier.from_settings(settings)
    result = notifier.send_test_email(to)

    if result.ok:
        console.print(f"[green]Sent via {result.provider} (attempts: {', '.join(result.attempts)})[/green]")
        sys.exit(0)

    console.print(f"[red]Test email failed: {result.error_reason}[/red]")
    sys.exit(1)


@mail.command('templates')
@click.pass_context
def list_templates(ctx):
    """List the notification templates."""
    loader = build_email_sender(ctx.obj['settings']).template_loader
    templates = loader.list_templates()

    if not templates:
        click.echo("No templates found")
        return

    click.echo(f"Available templates ({len(templates)}):")
    for template in templates:
        metadata = loader.load_metadata(template)
        click.echo(f"  - {template}: {metadata.description or metadata.subject}")


if __name__ == '__main__':
    main(obj={})
