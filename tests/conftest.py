import pytest
import pytest_asyncio

from records import ExecuteResult, SQLiteStorage, Storage, all_schemas


class RecordingStorage(Storage):
    """Remembers every statement instead of running it.

    rows is what any query returns. An exception in rows stands in for a
    row that couldn't be read.
    """

    def __init__(self, rows=(), last_insert_id=1):
        self.statements = []
        self.rows = list(rows)
        self.last_insert_id = last_insert_id

    @property
    def queries(self):
        return [query for query, _ in self.statements]

    async def execute(self, query, params=None):
        self.statements.append((query, params))
        return ExecuteResult(self.last_insert_id)

    async def for_each_row(self, query, params, callback):
        self.statements.append((query, params))
        for row in self.rows:
            if isinstance(row, Exception):
                callback(None, row)
            else:
                callback(row, None)


@pytest.fixture
def recording_storage():
    return RecordingStorage()


@pytest_asyncio.fixture
async def sqlite_storage():
    storage = await SQLiteStorage.connect(':memory:')
    for schema in all_schemas():
        await storage.execute(schema.create_sql(serial=storage.serial_sql))

    yield storage
    await storage.close()
