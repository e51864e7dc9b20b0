#!/usr/bin/env python3

import asyncio
import contextlib
import datetime
import functools
import json
import logging
import os
import sys

import click

from records import PostgresStorage, SQLiteStorage, ValidationError, all_schemas
from stations import DEFAULT_OBSERVATION_SPAN, add_observation, add_observations, get_observations


@contextlib.contextmanager
def log(stream=False):
    logs = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
    os.makedirs(logs, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    handler = logging.FileHandler(
        filename=os.path.join(logs, f'stationlog-{datetime.datetime.now():%Y-%m-%d_%H-%M-%S}.log'),
        encoding='utf-8',
        mode='w'
    )
    fmt = logging.Formatter('[{asctime}] ({levelname:<7}) {name}: {message}', '%Y-%m-%d %H:%M:%S', style='{')
    handler.setFormatter(fmt)
    root.addHandler(handler)

    if stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(fmt)
        root.addHandler(stream_handler)

    try:
        yield
    finally:
        for hdlr in root.handlers[:]:
            hdlr.close()
            root.removeHandler(hdlr)


# ------------- DB-related stuff ------------------

async def _open_storage():
    # Imported here so that --help works without a config file.
    import config

    if config.db_backend == 'postgres':
        psql = f'postgresql://{config.psql_user}:{config.psql_pass}@{config.psql_host}/{config.psql_db}'
        return await PostgresStorage.connect(psql, command_timeout=60)
    return await SQLiteStorage.connect(config.db_file)


def _observation_span():
    import config
    return getattr(config, 'observation_span_ms', DEFAULT_OBSERVATION_SPAN)


def _with_storage(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        async def runner():
            async with await _open_storage() as storage:
                return await func(storage, *args, **kwargs)

        try:
            return asyncio.run(runner())
        except ValidationError as e:
            for error in e.errors:
                click.echo(error, err=True)
            sys.exit(1)
    return wrapper


def _dump(records):
    click.echo(json.dumps([r.to_dict() for r in records], indent=4, default=str))


#--------------MAIN---------------

@click.group()
@click.option('--log-stream', is_flag=True, help='Adds a stderr stream-handler for logging')
@click.pass_context
def main(ctx, log_stream):
    ctx.with_resource(log(log_stream))


@main.command()
@_with_storage
async def init(storage):
    """Create every registered table that doesn't exist yet"""
    for schema in all_schemas():
        click.echo(f'creating table {schema.table_name}')
        await storage.execute(schema.create_sql(serial=storage.serial_sql))


@main.command()
@click.argument('data')
@_with_storage
async def record(storage, data):
    """Record one observation, or a list of them, given as JSON"""
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise ValidationError([f'Invalid JSON: {e}']) from None

    if isinstance(payload, list):
        _dump(await add_observations(storage, payload))
    else:
        _dump([await add_observation(storage, payload)])


@main.command()
@click.option('--type', 'observation_type', default=None, help='Only show this type of observation')
@click.option('--station', 'station_key', default=None, help='Only show observations from this station')
@click.option('--start', 'start_time', type=int, default=None, help='Start time in epoch milliseconds')
@click.option('--end', 'end_time', type=int, default=None, help='End time in epoch milliseconds')
@_with_storage
async def query(storage, observation_type, station_key, start_time, end_time):
    """Show the observations in a time window, by default the last day"""
    _dump(await get_observations(
        storage,
        observation_type=observation_type,
        station_key=station_key,
        start_time=start_time,
        end_time=end_time,
        span=_observation_span(),
    ))


if __name__ == '__main__':
    sys.exit(main())
