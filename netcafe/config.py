import os

server_mode = os.getenv("SERVER_MODE", "development")
"""The operational mode of the server."""

database_url = os.getenv("DATABASE_URL", "sqlite://db.sqlite3")
"""The tortoise connection url for the database."""

transaction_timeout = float(os.getenv("TRANSACTION_TIMEOUT", "10"))
"""How long (in seconds) a single transaction may run before it is aborted."""

sentry_dsn = os.getenv("SENTRY_DSN", None)
"""The sentry DSN used for exception tracking."""

api_root = "/api/v1"
"""The base url for the api."""
