"""
Flask CLI commands for the journal: ``flask journal <command>``.
"""
import json
import os

import click
from flask.cli import AppGroup

from .migrations.journal_tables import create_journal_tables
from .models.journal import is_valid
from .services import get_services

journal_cli = AppGroup('journal', help='Inspect and sync the local journal.')


@journal_cli.command('list')
@click.option('--valid', is_flag=True, help='Only show entries that count toward history.')
def list_entries(valid):
    """Print local entries, newest date first."""
    services = get_services()
    entries = services.call(services.orchestrator.get_all)
    for entry in entries:
        if valid and not is_valid(entry):
            continue
        marker = '*' if is_valid(entry) else ' '
        click.echo(f"{marker} {entry.date.isoformat()}  {entry.id}  {entry.today_mit_description}")


@journal_cli.command('stats')
def stats():
    """Print the number of recorded days."""
    services = get_services()
    click.echo(f"Recorded days: {services.call(services.orchestrator.count_recorded_days)}")


@journal_cli.command('migrate')
def migrate():
    """Upload every local entry to the remote store."""
    services = get_services()
    result = services.run(services.orchestrator.migrate_local_to_remote())
    click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))


@journal_cli.command('reset')
@click.confirmation_option(prompt='This deletes every local entry and the user id. Continue?')
def reset():
    """Clear the local journal and the user id."""
    services = get_services()
    services.call(services.orchestrator.reset)
    click.echo("Local journal cleared.")


@journal_cli.command('init-remote-schema')
@click.option('--database-url', default=lambda: os.environ.get('DATABASE_URL'),
              help='Postgres URL of the remote database (defaults to DATABASE_URL).')
def init_remote_schema(database_url):
    """Create the journal_entries and journal_items tables."""
    if not database_url:
        raise click.UsageError("DATABASE_URL is not set")
    tables = create_journal_tables(database_url)
    click.echo(f"Tables ready: {', '.join(tables)}")
