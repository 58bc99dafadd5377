"""Declarative base for warehouse view mappings."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
