__all__ = [
    'RecordError', 'SchemaError', 'ValidationError',
    'QueryError', 'UnknownFieldError', 'UnsupportedOperatorError',
]


class RecordError(Exception):
    """Base exception for everything raised by the records package."""


class SchemaError(RecordError):
    """A record type was declared wrong, or not declared at all.

    These are programming mistakes, so nothing should ever try to recover
    from them.
    """


class ValidationError(RecordError):
    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class QueryError(RecordError):
    pass


class UnknownFieldError(QueryError):
    def __init__(self, field, table):
        self.field = field
        self.table = table
        super().__init__(f'Unknown field "{field}" for table "{table}"')


class UnsupportedOperatorError(QueryError):
    def __init__(self, operator):
        self.operator = operator
        super().__init__(f'Unsupported operator "{operator}"')
