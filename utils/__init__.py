"""Shared helpers: database connection, store dependency, parsing and error types."""
