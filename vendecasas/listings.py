import logging
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vendecasas.errors import ListingNotFound, StoreFailure
from vendecasas.models import Listing, utcnow
from vendecasas.schemas import ListingCreate, ListingUpdate
from vendecasas.utils import Identifier, SequentialId

logger = logging.getLogger(__name__)

LIST_FAILED = "Error al obtener propiedades"
CREATE_FAILED = "Error al crear propiedad"
UPDATE_FAILED = "Error al actualizar propiedad"
DELETE_FAILED = "Error al eliminar propiedad"
DELETE_ALL_FAILED = "Error al vaciar propiedades"


class ListingRepository:
    """
    Owns the property-listing collection.

    Every public method is an operation boundary: store errors are rolled
    back, logged and re-raised as StoreFailure with a generic message.
    """

    def __init__(self, db: Session, id_allocation_attempts: int = 5):
        self.db = db
        self.id_allocation_attempts = max(1, id_allocation_attempts)

    def list(self) -> list[Listing]:
        """All listings ordered by sequential id ascending."""
        logger.info("Querying listings")
        try:
            listings = self.db.query(Listing).order_by(Listing.sequential_id.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list listings: {e}")
            raise StoreFailure(LIST_FAILED) from e
        logger.info(f"Retrieved {len(listings)} listings")
        return listings

    def create(self, payload: Any) -> Listing:
        """
        Validate, normalize and insert a new listing.

        The sequential id is `max + 1` (1 for an empty collection). The
        column is unique, so a concurrent create that grabbed the same
        number makes the insert fail; the allocation is then retried with
        a fresh maximum.

        Args:
            payload: Listing fields (a JSON object), any `id` / `_id` is ignored

        Returns:
            The stored listing, including storage id and timestamps
        """
        try:
            fields = ListingCreate.model_validate(payload).model_dump(mode="json")
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Rejected listing payload: {e}")
            raise StoreFailure(CREATE_FAILED) from e

        for attempt in range(1, self.id_allocation_attempts + 1):
            try:
                sequential_id = self._next_sequential_id()
                logger.debug(f"Allocated sequential id {sequential_id} (attempt {attempt})")

                listing = Listing(sequential_id=sequential_id, **fields)
                self.db.add(listing)
                self.db.commit()
                self.db.refresh(listing)
                logger.info(f"Listing created: id={listing.sequential_id}, _id={listing.storage_id}")
                return listing

            except IntegrityError as e:
                # Another create took this sequential id first
                self.db.rollback()
                logger.warning(f"Sequential id conflict on attempt {attempt}: {e.orig}")

            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to create listing: {e}")
                raise StoreFailure(CREATE_FAILED) from e

        logger.error(f"Gave up allocating a sequential id after {self.id_allocation_attempts} attempts")
        raise StoreFailure(CREATE_FAILED)

    def update(self, identifier: Identifier, payload: Any) -> Listing:
        """
        Apply a partial update to the listing the identifier resolves to.

        Fields absent from the payload are left untouched.

        Raises:
            ListingNotFound: identifier matches no listing
            StoreFailure: invalid field values or store error
        """
        listing = self._resolve(identifier, UPDATE_FAILED)
        if listing is None:
            logger.info(f"Update target not found: {identifier}")
            raise ListingNotFound()

        try:
            changes = ListingUpdate.model_validate(payload).model_dump(mode="json", exclude_unset=True)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning(f"Rejected listing update: {e}")
            raise StoreFailure(UPDATE_FAILED) from e

        logger.debug(f"Updating listing {listing.sequential_id} fields: {sorted(changes)}")
        try:
            for field, value in changes.items():
                setattr(listing, field, value)
            listing.updated_at = utcnow()
            self.db.commit()
            self.db.refresh(listing)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update listing {identifier}: {e}")
            raise StoreFailure(UPDATE_FAILED) from e

        logger.info(f"Listing updated: id={listing.sequential_id}")
        return listing

    def delete(self, identifier: Identifier) -> None:
        """Remove exactly one listing, or raise ListingNotFound."""
        listing = self._resolve(identifier, DELETE_FAILED)
        if listing is None:
            logger.info(f"Delete target not found: {identifier}")
            raise ListingNotFound()

        try:
            self.db.delete(listing)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete listing {identifier}: {e}")
            raise StoreFailure(DELETE_FAILED) from e

        logger.info(f"Listing deleted: id={listing.sequential_id}")

    def delete_all(self) -> int:
        """Remove every listing. Irreversible."""
        try:
            removed = self.db.query(Listing).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete all listings: {e}")
            raise StoreFailure(DELETE_ALL_FAILED) from e

        logger.warning(f"All listings deleted: {removed} removed")
        return removed

    def _next_sequential_id(self) -> int:
        current = self.db.query(func.max(Listing.sequential_id)).scalar()
        return (current or 0) + 1

    def _resolve(self, identifier: Identifier, failure_message: str) -> Optional[Listing]:
        query = self.db.query(Listing)
        try:
            if isinstance(identifier, SequentialId):
                if identifier.value is None:
                    return None
                return query.filter(Listing.sequential_id == identifier.value).first()
            return query.filter(Listing.storage_id == identifier.value).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to resolve listing {identifier}: {e}")
            raise StoreFailure(failure_message) from e
