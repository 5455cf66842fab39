"""Alembic migration environment for the SACRED database."""
