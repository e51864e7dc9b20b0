# Copy this file to config.py and fill it in. Nothing should import this
# module directly.

# ----------------------- DATABASE ---------------------

# Which database to store observations in. This can be one of two things:
# 1. 'sqlite' - a single file, given by db_file
# 2. 'postgres' - a PostgreSQL server, given by the psql_* settings below
db_backend = 'sqlite'

# The SQLite database file. ':memory:' works too, but nothing will be kept.
db_file = 'stationlog.db'

# The credentials to log into your PostgreSQL database.
# Please keep this private.
psql_user = ''
psql_pass = ''
psql_host = ''
psql_db = ''

# -------------------- OBSERVATIONS ---------------------

# How far back `query` looks when no start time is given, in milliseconds.
# Defaults to one day (24 * 60 * 60 * 1000)
observation_span_ms = 86400000
