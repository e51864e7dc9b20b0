"""Storage resources the record layer runs its statements through.

Queries always use ``$name`` placeholders with a mapping of parameters.
SQLite understands that style natively, asyncpg only knows positional
``$1`` placeholders so the PostgreSQL adapter rewrites them.
"""

import collections
import logging
import re

import aiosqlite
import asyncpg

__all__ = ['ExecuteResult', 'Storage', 'SQLiteStorage', 'PostgresStorage', 'create_pool']

log = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r'\$([A-Za-z_]\w*)')


class ExecuteResult(collections.namedtuple('ExecuteResult', 'last_insert_id')):
    __slots__ = ()


def _is_insert(query):
    return query.lstrip()[:6].upper() == 'INSERT'


def _check_params(query, params):
    params = params or {}
    for name in _PLACEHOLDER.findall(query):
        if name not in params:
            raise KeyError(f'no value given for parameter ${name}')
    return params


def _to_positional(query, params):
    params = _check_params(query, params)
    positions = {}
    args = []

    def replace(match):
        name = match[1]
        if name not in positions:
            args.append(params[name])
            positions[name] = len(args)
        return f'${positions[name]}'

    return _PLACEHOLDER.sub(replace, query), args


def _emit_rows(rows, callback):
    for row in rows:
        try:
            record = dict(row)
        except (TypeError, ValueError) as e:
            callback(None, e)
        else:
            callback(record, None)


class Storage:
    """Interface for the statement-executing resource.

    The record layer never owns one of these, it only borrows it for the
    duration of a single operation.
    """
    # How an auto-generated integer primary key is declared.
    serial_sql = 'INTEGER PRIMARY KEY'

    async def execute(self, query, params=None):
        """Runs a statement and returns an ExecuteResult."""
        raise NotImplementedError

    async def for_each_row(self, query, params, callback):
        """Runs a query, calling callback(row, error) once per row.

        row is a dict of column -> value. If a single row couldn't be read,
        row is None and error is the exception.
        """
        raise NotImplementedError

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


class SQLiteStorage(Storage):
    def __init__(self, connection):
        self._conn = connection
        self._conn.row_factory = aiosqlite.Row

    @classmethod
    async def connect(cls, filename, **kwargs):
        return cls(await aiosqlite.connect(filename, **kwargs))

    async def execute(self, query, params=None):
        params = _check_params(query, params)
        log.debug('executing %s with %r', query, params)

        async with self._conn.execute(query, params) as cursor:
            last_id = cursor.lastrowid
        await self._conn.commit()

        return ExecuteResult(last_id if _is_insert(query) else None)

    async def for_each_row(self, query, params, callback):
        params = _check_params(query, params)
        log.debug('fetching %s with %r', query, params)

        async with self._conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        _emit_rows(rows, callback)

    async def close(self):
        await self._conn.close()


class PostgresStorage(Storage):
    serial_sql = 'SERIAL PRIMARY KEY'

    def __init__(self, pool):
        self._pool = pool

    @classmethod
    async def connect(cls, dsn, **kwargs):
        return cls(await create_pool(dsn, **kwargs))

    async def execute(self, query, params=None):
        positional, args = _to_positional(query, params)
        log.debug('executing %s with %r', positional, args)

        async with self._pool.acquire() as conn:
            await conn.execute(positional, *args)
            if not _is_insert(query):
                return ExecuteResult(None)

            # lastval() is per-session, so it has to be the same connection.
            try:
                last_id = await conn.fetchval('SELECT lastval()')
            except asyncpg.ObjectNotInPrerequisiteStateError:
                # The insert didn't touch a sequence.
                last_id = None

        return ExecuteResult(last_id)

    async def for_each_row(self, query, params, callback):
        positional, args = _to_positional(query, params)
        log.debug('fetching %s with %r', positional, args)

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(positional, *args)
        _emit_rows(rows, callback)

    async def close(self):
        await self._pool.close()


async def create_pool(dsn, *, init=None, **kwargs):
    return await asyncpg.create_pool(dsn, init=init, **kwargs)
