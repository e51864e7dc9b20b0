import enum
import math

from .errors import SchemaError

__all__ = ['ColumnType', 'Number', 'String', 'Boolean', 'Column']


class ColumnType(enum.Enum):
    Number = 'number'
    String = 'string'
    Boolean = 'boolean'

    @property
    def sql(self):
        return _SQL_TYPES[self]

    def accepts(self, value):
        """Returns True if value can be stored in a column of this type."""
        if self is ColumnType.Boolean:
            return value is True or value is False

        if self is ColumnType.Number:
            # bool is a subclass of int, but "true" isn't a number.
            if isinstance(value, bool):
                return False
            try:
                return not math.isnan(float(value))
            except (TypeError, ValueError):
                return False

        # Strings are never checked.
        return True

    def from_storage(self, value):
        """Converts a value read back from the database.

        SQLite has no real boolean type and hands back 0 or 1.
        """
        if self is ColumnType.Boolean and value is not None:
            return bool(value)
        return value

_SQL_TYPES = {
    ColumnType.Number: 'NUMERIC',
    ColumnType.String: 'TEXT',
    ColumnType.Boolean: 'BOOLEAN',
}

Number = ColumnType.Number
String = ColumnType.String
Boolean = ColumnType.Boolean


class Column:
    __slots__ = ('name', 'type', 'nullable', 'primary_key')

    def __init__(self, name, type, *, nullable=False, primary_key=False):
        if not name:
            raise SchemaError('Column name cannot be empty')
        if not isinstance(type, ColumnType):
            raise SchemaError(f'type should be a ColumnType, not {type!r}')

        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'type', type)
        object.__setattr__(self, 'nullable', nullable)
        object.__setattr__(self, 'primary_key', primary_key)

    def __setattr__(self, name, value):
        raise AttributeError(f'{self.__class__.__name__} is immutable')

    def __repr__(self):
        return (
            f'<{self.__class__.__name__} name={self.name!r} type={self.type.name} '
            f'nullable={self.nullable} primary_key={self.primary_key}>'
        )

    def __eq__(self, other):
        if not isinstance(other, Column):
            return NotImplemented
        return (self.name, self.type, self.nullable, self.primary_key) == \
               (other.name, other.type, other.nullable, other.primary_key)

    def __hash__(self):
        return hash((self.name, self.type, self.nullable, self.primary_key))

    @property
    def quoted(self):
        return quote(self.name)

    def create_sql(self, *, serial='INTEGER PRIMARY KEY'):
        builder = [self.quoted]
        build = builder.append

        if self.primary_key and self.type is ColumnType.Number:
            # The storage decides how generated ids are spelled.
            build(serial)
        else:
            build(self.type.sql)
            if self.primary_key:
                build('PRIMARY KEY')

        if not self.nullable:
            build('NOT NULL')

        return ' '.join(builder)


def quote(identifier):
    return '"{}"'.format(identifier.replace('"', '""'))
