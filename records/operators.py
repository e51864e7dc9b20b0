import enum
import re

from .errors import QueryError, UnsupportedOperatorError

__all__ = ['Operator', 'param_name']


def param_name(column, suffix=None):
    """Derives a placeholder name from a column, so parameters for different
    columns never collide within one clause.
    """
    name = re.sub(r'\W', '_', column.name)
    if suffix is not None:
        name = f'{name}_{suffix}'
    return name


def _comparison(symbol):
    def build(column, value):
        name = param_name(column)
        return f'{column.quoted} {symbol} ${name}', {name: value}
    return build


def _between(column, value):
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise QueryError(
            f'between on "{column.name}" expects a pair of values, got {value!r}'
        )

    start, end = value

    start_name, end_name = param_name(column, 'start'), param_name(column, 'end')
    fragment = f'{column.quoted} BETWEEN ${start_name} AND ${end_name}'
    return fragment, {start_name: start, end_name: end}


_BUILDERS = {
    'eq': _comparison('='),
    'gt': _comparison('>'),
    'gte': _comparison('>='),
    'lt': _comparison('<'),
    'lte': _comparison('<='),
    'between': _between,
}


class Operator(enum.Enum):
    eq = 'eq'
    gt = 'gt'
    gte = 'gte'
    lt = 'lt'
    lte = 'lte'
    between = 'between'

    @classmethod
    def lookup(cls, name):
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedOperatorError(name) from None

    def build(self, column, value):
        """Returns a (fragment, params) pair comparing column against value."""
        return _BUILDERS[self.value](column, value)
