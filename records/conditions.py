import collections.abc
import logging
import re

from .errors import QueryError, UnknownFieldError
from .operators import Operator, param_name

__all__ = ['WhereClause', 'compile_conditions']

log = logging.getLogger(__name__)


class WhereClause:
    __slots__ = ('sql', 'params')

    def __init__(self, sql='', params=None):
        self.sql = sql
        self.params = dict(params or {})

    def __repr__(self):
        return f'{self.__class__.__name__}(sql={self.sql!r}, params={self.params!r})'

    def __bool__(self):
        return bool(self.sql)

    def __and__(self, other):
        if not isinstance(other, WhereClause):
            return NotImplemented
        if not self:
            return WhereClause(other.sql, other.params)
        if not other:
            return WhereClause(self.sql, self.params)
        overlap = self.params.keys() & other.params.keys()
        if overlap:
            raise QueryError(f'Parameter names used twice in one clause: {", ".join(sorted(overlap))}')
        return WhereClause(f'{self.sql} AND {other.sql}', {**self.params, **other.params})

    def to_sql(self):
        """Returns the clause ready to append to a statement, including the
        WHERE keyword, or an empty string if there's nothing to filter on.
        """
        return f' WHERE {self.sql}' if self else ''


_PLACEHOLDER = re.compile(r'\$([A-Za-z_]\w*)')


def _rename_taken(clause, used):
    """Returns clause with any parameter already in used given a new name.

    Names come from column names, so e.g. "value" BETWEEN $value_start ...
    can clash with a column that's actually called value_start.
    """
    taken = used | clause.params.keys()
    renames = {}
    for name in clause.params:
        if name not in used:
            continue
        suffix = 1
        while f'{name}_{suffix}' in taken:
            suffix += 1
        renames[name] = new_name = f'{name}_{suffix}'
        taken.add(new_name)

    if not renames:
        return clause

    sql = _PLACEHOLDER.sub(lambda m: '$' + renames.get(m[1], m[1]), clause.sql)
    params = {renames.get(name, name): value for name, value in clause.params.items()}
    return WhereClause(sql, params)


def _compile_in(column, values):
    if not values:
        # IN () is a syntax error, but the intent is "matches nothing".
        return WhereClause('1 = 0')

    names = [param_name(column, i) for i in range(len(values))]
    placeholders = ', '.join(f'${n}' for n in names)
    return WhereClause(f'{column.quoted} IN ({placeholders})', dict(zip(names, values)))


def _compile_operator(column, condition):
    if len(condition) != 1:
        raise QueryError(
            f'Condition on "{column.name}" must have exactly one operator, '
            f'got {len(condition)}: {list(condition)}'
        )

    (name, value), = condition.items()
    return WhereClause(*Operator.lookup(name).build(column, value))


def _compile_one(column, condition):
    if isinstance(condition, collections.abc.Mapping):
        return _compile_operator(column, condition)
    if isinstance(condition, (list, tuple)):
        return _compile_in(column, condition)
    return WhereClause(*Operator.eq.build(column, condition))


def compile_conditions(schema, conditions):
    """Compiles a mapping of property -> condition into a WhereClause.

    A condition is either a plain value (equality), a list of values (IN),
    or a mapping with exactly one operator, e.g. {'between': [10, 20]}.
    Fragments are ANDed together in the order the mapping yields them.
    """
    clause = WhereClause()
    if not conditions:
        return clause

    for field, condition in conditions.items():
        try:
            column = schema.fields[field]
        except KeyError:
            raise UnknownFieldError(field, schema.table_name) from None

        clause &= _rename_taken(_compile_one(column, condition), clause.params.keys())

    log.debug('compiled conditions %r on %s into %r', conditions, schema.table_name, clause)
    return clause
