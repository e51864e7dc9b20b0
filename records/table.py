import collections.abc
import logging
import types

from .column import Column, quote
from .conditions import compile_conditions
from .errors import SchemaError, ValidationError

__all__ = ['Schema', 'Record', 'register', 'schema_for', 'all_schemas']

log = logging.getLogger(__name__)


class Schema:
    """Binds a record type to its table and its property -> column map."""
    __slots__ = ('table_name', 'fields', 'primary_key')

    def __init__(self, table_name, fields):
        if not table_name:
            raise SchemaError('Table name is not set')
        if not fields:
            raise SchemaError(f'Field map is not set for table "{table_name}"')

        fields = dict(fields)
        for name, column in fields.items():
            if not isinstance(column, Column):
                raise SchemaError(f'Field "{name}" of "{table_name}" should be a Column, not {column!r}')
            if not name.isidentifier():
                raise SchemaError(f'Field name {name!r} of "{table_name}" is not a valid identifier')

        primary_keys = [name for name, column in fields.items() if column.primary_key]
        if len(primary_keys) > 1:
            raise SchemaError(
                f'Table "{table_name}" declares more than one primary key: {", ".join(primary_keys)}'
            )

        self.table_name = table_name
        self.fields = types.MappingProxyType(fields)
        self.primary_key = primary_keys[0] if primary_keys else None

    def __repr__(self):
        return f'<Schema table_name={self.table_name!r} fields={list(self.fields)} primary_key={self.primary_key!r}>'

    def __eq__(self, other):
        if not isinstance(other, Schema):
            return NotImplemented
        return (self.table_name, list(self.fields.items())) == (other.table_name, list(other.fields.items()))

    __hash__ = None

    @property
    def quoted_table(self):
        return quote(self.table_name)

    @property
    def updatable_fields(self):
        """The fields that can be inserted/updated, i.e. everything but the primary key."""
        return [name for name in self.fields if name != self.primary_key]

    def verify(self, *, primary_key_required=False):
        if not self.table_name:
            raise SchemaError('Table name is not set')

        if not self.fields:
            raise SchemaError(f'Field map is not set for table "{self.table_name}"')

        if primary_key_required and not self.primary_key:
            raise SchemaError(
                f'Primary key is not set for table "{self.table_name}" and is required for that operation'
            )

        if self.primary_key and self.primary_key not in self.fields:
            raise SchemaError(f'Primary key "{self.primary_key}" not found in {self.table_name}')

    def create_sql(self, *, exist_ok=True, serial='INTEGER PRIMARY KEY'):
        """Return the CREATE TABLE statement for this table"""
        builder = ['CREATE TABLE']
        build = builder.append

        if exist_ok:
            build('IF NOT EXISTS')
        build(self.quoted_table)

        column_statements = ',\n'.join(c.create_sql(serial=serial) for c in self.fields.values())
        build(f'(\n{column_statements}\n);')
        return ' '.join(builder)


_schemas = {}

def register(record_type, table_name, fields):
    """Attaches a table and field map to a record type.

    This should be called once, right after the type is defined. Registering
    the same schema again is harmless, registering a different one is not.
    """
    schema = Schema(table_name, fields)

    existing = _schemas.get(record_type)
    if existing is not None:
        if existing != schema:
            raise SchemaError(f'{record_type.__name__} is already registered to {existing!r}')
        return existing

    _schemas[record_type] = schema
    log.debug('registered %s to %r', record_type.__name__, schema)
    return schema


def schema_for(record_type):
    try:
        return _schemas[record_type]
    except KeyError:
        raise SchemaError(f'{record_type.__name__} is not registered to a table') from None


def all_schemas():
    return list(_schemas.values())


def _validate(schema, obj):
    errors = []
    for name, column in schema.fields.items():
        if name == schema.primary_key:
            continue

        if name not in obj or obj[name] is None:
            if not column.nullable:
                errors.append(f'Expected value for column "{name}"')
            continue

        value = obj[name]
        if not column.type.accepts(value):
            errors.append(f'Expected type {column.type.value} for column "{name}". Got: {value!r}')

    return errors


class Record:
    """Base class for anything that's stored as a row of a registered table.

    Subclasses must be passed to :func:`register` before any of the
    query-issuing methods are used. Fields that haven't been set read as
    None.
    """

    def __getattr__(self, name):
        # Only reached when the attribute was never set.
        try:
            fields = self._schema().fields
        except SchemaError:
            fields = ()

        if name in fields:
            return None
        raise AttributeError(f'{self.__class__.__name__!r} object has no attribute {name!r}')

    def __repr__(self):
        try:
            fields = self._schema().fields
        except SchemaError:
            return f'<{self.__class__.__name__} (unregistered)>'

        attrs = ' '.join(f'{name}={getattr(self, name, None)!r}' for name in fields)
        return f'<{self.__class__.__name__} {attrs}>'

    @classmethod
    def _schema(cls):
        return schema_for(cls)

    @classmethod
    def create(cls):
        """Returns a new, empty instance. Override this if the subclass
        can't be constructed without arguments.
        """
        return cls()

    @classmethod
    def create_sql(cls, *, exist_ok=True, serial='INTEGER PRIMARY KEY'):
        return cls._schema().create_sql(exist_ok=exist_ok, serial=serial)

    # ---------- mapping ----------

    def hydrate(self, row):
        """Copies the columns of a database row into this instance.

        Columns the schema doesn't know about are ignored, and fields whose
        column is missing from the row are left alone.
        """
        for name, column in self._schema().fields.items():
            if column.name in row:
                setattr(self, name, column.type.from_storage(row[column.name]))
        return self

    @classmethod
    def _from_row(cls, row):
        return cls.create().hydrate(row)

    @classmethod
    def create_from_object(cls, obj):
        """Creates an instance from a plain mapping, checking every field
        against its column.

        Raises ValidationError listing every field that failed, rather than
        just the first one.
        """
        if not isinstance(obj, collections.abc.Mapping):
            raise ValidationError([f'Expected an object, got {type(obj).__name__}'])

        schema = cls._schema()
        errors = _validate(schema, obj)
        if errors:
            log.info('rejected %s: %s', cls.__name__, errors)
            raise ValidationError(errors)

        instance = cls.create()
        for name in schema.fields:
            setattr(instance, name, obj.get(name))
        return instance

    def to_write_params(self, fields):
        return {name: getattr(self, name, None) for name in fields}

    def to_dict(self):
        return {name: getattr(self, name, None) for name in self._schema().fields}

    # ---------- persistence ----------

    async def sync(self, storage):
        """Saves this record. INSERTs if the primary key isn't set (and sets
        it afterwards), otherwise UPDATEs the existing row.
        """
        schema = self._schema()
        primary_key = schema.primary_key

        if primary_key is None or not getattr(self, primary_key, None):
            await self._insert(storage, schema)
        else:
            await self._update(storage, schema)

    async def _insert(self, storage, schema):
        schema.verify()

        fields = schema.updatable_fields
        if fields:
            columns = ', '.join(schema.fields[name].quoted for name in fields)
            values = ', '.join(f'${name}' for name in fields)
            query = f'INSERT INTO {schema.quoted_table} ({columns}) VALUES ({values})'
        else:
            query = f'INSERT INTO {schema.quoted_table} DEFAULT VALUES'

        result = await storage.execute(query, self.to_write_params(fields))

        if schema.primary_key:
            setattr(self, schema.primary_key, result.last_insert_id)
        log.debug('inserted %r into %s', result.last_insert_id, schema.table_name)

    async def _update(self, storage, schema):
        schema.verify(primary_key_required=True)

        primary_key = schema.primary_key
        fields = schema.updatable_fields
        if not fields:
            # Nothing but the key, which is already there.
            return

        assignments = ', '.join(f'{schema.fields[name].quoted} = ${name}' for name in fields)
        query = (
            f'UPDATE {schema.quoted_table} SET {assignments} '
            f'WHERE {schema.fields[primary_key].quoted} = ${primary_key}'
        )

        # No row count check: updating a row that isn't there isn't an error.
        await storage.execute(query, self.to_write_params([*fields, primary_key]))

    # ---------- selection ----------

    @classmethod
    async def select_all(cls, storage, conditions=None):
        """Returns every row of the table matching conditions as instances.

        Rows that fail to be read are skipped.
        """
        schema = cls._schema()
        schema.verify()

        where = compile_conditions(schema, conditions)
        query = f'SELECT * FROM {schema.quoted_table}{where.to_sql()}'

        results = []

        def on_row(row, error):
            if error is not None:
                log.warning('skipping unreadable row from %s: %s', schema.table_name, error)
                return
            results.append(cls._from_row(row))

        await storage.for_each_row(query, where.params, on_row)
        return results

    @classmethod
    async def select_by_id(cls, storage, id):
        schema = cls._schema()
        schema.verify(primary_key_required=True)

        results = await cls.select_all(storage, {schema.primary_key: id})
        return results[0] if results else None
