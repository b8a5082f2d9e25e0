"""
RiderOps CLI commands

This module provides command-line interface for RiderOps operations.
"""

import asyncio
import json
import sys
from pathlib import Path

import click
import yaml

from riderops.config.riderops_config import RiderOpsConfig, configure_logging
from riderops.db.connection import Database
from riderops.errors import RiderOpsError
from riderops.jobs.bulk_eligibility import BulkConfig, BulkEligibilityOrchestrator
from riderops.jobs.progress import LoggingProgressSink
from riderops.models.rider import default_pipeline_data
from riderops.processors.normalizer import ALLOWED_VALUES, clean_rider_data, normalize as normalize_value
from riderops.services.rider_service import RiderService
from riderops.store.store_factory import StoreFactory

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _fail(message: str) -> None:
    click.echo(f'Error: {message}', err=True)
    sys.exit(1)


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True), help='Path to configuration file')
@click.option('--log-level', type=click.Choice(LOG_LEVELS), help='Logging level')
@click.pass_context
def cli(ctx, config_path, log_level):
    """RiderOps command-line interface"""
    config = RiderOpsConfig.from_file(config_path) if config_path else RiderOpsConfig()
    configure_logging(config, log_level)
    ctx.obj = config


@cli.command()
@click.option('--db-type', type=click.Choice(['sqlite', 'postgresql']), help='Database type')
@click.option('--db-path', type=click.Path(), help='SQLite database path')
@click.option('--db-host', help='PostgreSQL host')
@click.option('--db-port', type=int, help='PostgreSQL port')
@click.option('--db-name', help='PostgreSQL database name')
@click.option('--db-user', help='PostgreSQL user')
@click.option('--db-password', help='PostgreSQL password')
@click.option('--store-type', type=click.Choice(['sql', 'memory']), help='Rider store backend')
@click.pass_obj
def init(config, db_type, db_path, db_host, db_port, db_name, db_user, db_password, store_type):
    """Write the user configuration and create database tables"""
    database = {}
    if db_type:
        database['type'] = db_type
    if db_path:
        database['path'] = str(Path(db_path))
    postgres = {
        key: value for key, value in {
            'host': db_host,
            'port': db_port,
            'database': db_name,
            'user': db_user,
            'password': db_password,
        }.items() if value is not None
    }
    if postgres:
        database['postgres'] = postgres

    sections = {'database': database}
    if store_type:
        sections['store'] = {'type': store_type}

    try:
        config = RiderOpsConfig.setup(**sections)
        if config.get('store.type') == 'sql':
            Database(config).create_tables()
    except (RuntimeError, OSError, ValueError) as e:
        _fail(f'initializing RiderOps: {str(e)}')

    click.echo('\nConfiguration:')
    click.echo(yaml.dump(config.get_all(), default_flow_style=False, sort_keys=False))
    click.echo('RiderOps initialized successfully!')


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--upload-id', help='Identifier recorded as last_upload_id')
@click.pass_obj
def seed(config, file, upload_id):
    """Load riders from a JSON list of {"rider_id": ..., "data": {...}}"""
    with open(file) as f:
        try:
            riders = json.load(f)
        except json.JSONDecodeError as e:
            _fail(f'invalid JSON in {file}: {e}')

    async def _seed():
        store = StoreFactory.create_store(config)
        added = 0
        for entry in riders:
            if not isinstance(entry, dict):
                raise ValueError(f"expected an object per rider, got {entry!r}")
            data = {**default_pipeline_data(), **clean_rider_data(entry.get('data', {}))}
            await store.add_rider(str(entry['rider_id']), data, last_upload_id=upload_id)
            added += 1
        return added

    try:
        added = asyncio.run(_seed())
    except (RiderOpsError, KeyError, ValueError) as e:
        _fail(str(e))
    click.echo(f'Added {added} riders')


@cli.command()
@click.argument('rider_id')
@click.argument('field')
@click.argument('value')
@click.option('--by', 'updated_by', help='Name or email recorded as last_updated_by')
@click.pass_obj
def update(config, rider_id, field, value, updated_by):
    """Set FIELD to VALUE on a rider and recalculate eligibility"""
    async def _update():
        service = RiderService(StoreFactory.create_store(config))
        return await service.update_field(rider_id, field, value, updated_by=updated_by)

    try:
        result = asyncio.run(_update())
    except RiderOpsError as e:
        _fail(str(e))
    click.echo(result.summary)


@cli.command()
@click.option('--page-size', type=int, help='Riders fetched per page')
@click.option('--batch-size', type=int, help='Riders per batch')
@click.option('--concurrency', type=int, help='Batches processed at once')
@click.option('--delay', type=float, help='Seconds to wait between batch groups')
@click.pass_obj
def recompute(config, page_size, batch_size, concurrency, delay):
    """Recompute eligibility for every rider"""
    bulk_config = BulkConfig.from_config(config)
    if page_size:
        bulk_config.page_size = page_size
    if batch_size:
        bulk_config.batch_size = batch_size
    if concurrency:
        bulk_config.max_concurrent_batches = concurrency
    if delay is not None:
        bulk_config.group_delay = delay

    async def _recompute():
        orchestrator = BulkEligibilityOrchestrator(
            StoreFactory.create_store(config),
            config=bulk_config,
            progress=LoggingProgressSink()
        )
        return await orchestrator.recompute_all()

    try:
        result = asyncio.run(_recompute())
    except RiderOpsError as e:
        _fail(str(e))

    if result.count_mismatch:
        click.echo(f'Warning: {result.count_mismatch}', err=True)
    click.echo(f'Processed: {result.processed_records}/{result.total_records}')
    click.echo(f'Updated: {result.updated_count}')
    if result.failed_count:
        click.echo(f'Failed: {result.failed_count}')
        for failure in result.failures:
            click.echo(f'  - {failure.rider_id}: {failure.error}')
    if result.cancelled:
        click.echo('Cancelled before all batches ran')


@cli.command()
@click.argument('field', type=click.Choice(sorted(ALLOWED_VALUES)))
@click.argument('value')
def normalize(field, value):
    """Print the canonical form of VALUE for FIELD"""
    click.echo(normalize_value(field, value))


@cli.command()
@click.argument('rider_id')
@click.pass_obj
def show(config, rider_id):
    """Print a rider as YAML"""
    async def _show():
        return await RiderService(StoreFactory.create_store(config)).get_rider(rider_id)

    try:
        rider = asyncio.run(_show())
    except RiderOpsError as e:
        _fail(str(e))
    if rider is None:
        _fail(f'Rider not found: {rider_id}')
    click.echo(yaml.dump(rider.to_dict(), default_flow_style=False, sort_keys=False))


@cli.command()
@click.argument('term')
@click.pass_obj
def search(config, term):
    """List riders whose id, name or phone contains TERM"""
    async def _search():
        return await RiderService(StoreFactory.create_store(config)).search_riders(term)

    try:
        riders = asyncio.run(_search())
    except RiderOpsError as e:
        _fail(str(e))
    if not riders:
        click.echo('No riders found.')
        return
    for rider in riders:
        click.echo(f"- {rider.rider_id} | {rider.data.get('rider_name', '')} | {rider.updated_at.isoformat()}")


if __name__ == '__main__':
    cli()
