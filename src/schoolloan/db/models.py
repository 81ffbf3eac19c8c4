"""Declarative base shared by all ORM models."""

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase

from ..utils import to_iso, utc_now


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def now_iso() -> str:
    """Column default for timestamp strings."""
    return to_iso(utc_now())
