"""Database models."""

from scheduling.models.appointments import appointments
from scheduling.models.metadata import metadata
from scheduling.models.users import users

__all__ = [
    "appointments",
    "metadata",
    "users",
]
