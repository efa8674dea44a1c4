"""Declarative base for the catalog tables this service reads."""

import secrets
import string
from datetime import datetime

from sqlalchemy import DateTime, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 24


def generate_id() -> str:
    """A cuid2-shaped id: a lowercase letter followed by lowercase alphanumerics.

    The catalog assigns ids when rows are created; this is only used when rows
    are inserted from here, e.g. in fixtures.
    """
    head = secrets.choice(string.ascii_lowercase)
    return head + "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_LENGTH - 1))


class Base(DeclarativeBase):
    """Text primary key plus the catalog's lifecycle timestamps."""

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=generate_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
