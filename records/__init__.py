"""A small declarative mapping between record types and database tables.

A record type is registered once against a table and a field map, and
inserts, updates, selects and input validation are all derived from that.
This isn't meant to be a full ORM, there are no joins, no transactions and
no nested boolean conditions, just a flat AND of per-column comparisons.
"""

from .column import *
from .conditions import *
from .errors import *
from .operators import *
from .storage import *
from .table import *

__license__ = 'MIT'
