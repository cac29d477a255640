"""
SQLAlchemy ORM models for the document store.

This module contains table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, Text

from vendecasas.storage import Base
from vendecasas.utils import new_storage_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """createdAt / updatedAt maintained by the store on every write."""
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Listing(TimestampMixin, Base):
    """
    SQLAlchemy model for a property listing.

    Table: propiedades
    Primary Key: storage_id (opaque, assigned at insert)
    Unique: sequential_id (application-assigned, max + 1)
    """
    __tablename__ = "propiedades"

    storage_id = Column(String(24), primary_key=True, default=new_storage_id)
    sequential_id = Column(Integer, nullable=False, unique=True, index=True)
    titulo = Column(String, nullable=False)
    tipo = Column(String, nullable=False)
    zona = Column(String, nullable=False)
    precio = Column(String, nullable=False)
    terreno_m2 = Column(Float, nullable=True)
    construccion_m2 = Column(Float, nullable=True)
    descripcion = Column(Text, nullable=False)
    imagenes = Column(JSON, nullable=False, default=list)  # encoded payloads, stored as-is


class ContactMessage(TimestampMixin, Base):
    """
    SQLAlchemy model for a contact-form submission. Append-only.

    Table: contactos
    """
    __tablename__ = "contactos"

    storage_id = Column(String(24), primary_key=True, default=new_storage_id)
    nombre = Column(String, nullable=False)
    telefono = Column(String, nullable=False)
    mensaje = Column(Text, nullable=False)
