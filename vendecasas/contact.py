import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vendecasas.errors import StoreFailure, ValidationFailure
from vendecasas.models import ContactMessage

logger = logging.getLogger(__name__)

SAVE_FAILED = "Error al guardar contacto"


class ContactIntake:
    """Append-only intake for contact-form messages."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, nombre: Any, telefono: Any, mensaje: Any) -> None:
        """
        Store a contact message.

        All three fields must be truthy: "", None and 0 count as missing and
        are rejected before the store is touched.

        Raises:
            ValidationFailure: a field is missing
            StoreFailure: the message could not be stored
        """
        if not nombre or not telefono or not mensaje:
            logger.info("Contact message rejected: missing fields")
            raise ValidationFailure("Faltan campos")

        # Text fields only take scalars; objects and arrays cannot be cast
        if any(isinstance(value, (dict, list)) for value in (nombre, telefono, mensaje)):
            logger.warning("Contact message rejected: non-scalar field value")
            raise StoreFailure(SAVE_FAILED)

        try:
            self.db.add(ContactMessage(nombre=str(nombre), telefono=str(telefono), mensaje=str(mensaje)))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store contact message: {e}")
            raise StoreFailure(SAVE_FAILED) from e

        logger.info("Contact message stored")
