"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from lastmile.models import notification as _notification  # noqa: E402,F401
from lastmile.models import offer as _offer  # noqa: E402,F401
from lastmile.models import user as _user  # noqa: E402,F401
