"""
Pydantic schemas for request/response validation.

This module contains:
- Listing payload models (full create, partial update)
- Contact request model
- Response models for API responses

Inputs accept both the Spanish wire names used by the web client and the
English attribute names; responses are always serialized with wire names.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from vendecasas.utils import normalize_area, normalize_images


class Category(str, Enum):
    """Listing category: for sale or business transfer."""
    VENTA = "Venta"
    TRASPASO = "Traspaso"


CATEGORY_ALIASES = {"sale": Category.VENTA, "transfer": Category.TRASPASO}


def _coerce_category(v: Any) -> Any:
    if isinstance(v, str):
        return CATEGORY_ALIASES.get(v.strip().lower(), v)
    return v


def _coerce_price(v: Any) -> Any:
    # Prices are display strings; numbers sent by clients are kept as text
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


# =============================================================================
# Listing Payload Models
# =============================================================================

class ListingCreate(BaseModel):
    """
    Full listing payload for create.

    Any client-supplied `id` / `_id` is ignored: the sequential id is
    allocated by the repository and the storage id by the store.
    """
    model_config = ConfigDict(extra="ignore")

    titulo: str = Field(..., min_length=1, validation_alias=AliasChoices("titulo", "title"))
    tipo: Category = Field(..., validation_alias=AliasChoices("tipo", "category"))
    zona: str = Field(..., min_length=1, validation_alias=AliasChoices("zona", "zone"))
    precio: str = Field(..., min_length=1, validation_alias=AliasChoices("precio", "price"))
    terreno_m2: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("terrenoM2", "landAreaM2", "terreno_m2"),
    )
    construccion_m2: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("construccionM2", "builtAreaM2", "construccion_m2"),
    )
    descripcion: str = Field(..., min_length=1, validation_alias=AliasChoices("descripcion", "description"))
    imagenes: list[str] = Field(default_factory=list, validation_alias=AliasChoices("imagenes", "images"))

    @field_validator("tipo", mode="before")
    @classmethod
    def accept_english_category(cls, v: Any) -> Any:
        return _coerce_category(v)

    @field_validator("precio", mode="before")
    @classmethod
    def price_as_text(cls, v: Any) -> Any:
        return _coerce_price(v)

    @field_validator("terreno_m2", "construccion_m2", mode="before")
    @classmethod
    def normalize_areas(cls, v: Any) -> Optional[float]:
        return normalize_area(v)

    @field_validator("imagenes", mode="before")
    @classmethod
    def images_as_list(cls, v: Any) -> list:
        return normalize_images(v)


class ListingUpdate(BaseModel):
    """
    Partial listing payload for update.

    Only the fields present in the payload are applied (see
    `model_dump(exclude_unset=True)`); required fields may be omitted but
    not nulled. `id`, `_id` and timestamps are ignored.
    """
    model_config = ConfigDict(extra="ignore")

    titulo: Optional[str] = Field(None, min_length=1, validation_alias=AliasChoices("titulo", "title"))
    tipo: Optional[Category] = Field(None, validation_alias=AliasChoices("tipo", "category"))
    zona: Optional[str] = Field(None, min_length=1, validation_alias=AliasChoices("zona", "zone"))
    precio: Optional[str] = Field(None, min_length=1, validation_alias=AliasChoices("precio", "price"))
    terreno_m2: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("terrenoM2", "landAreaM2", "terreno_m2"),
    )
    construccion_m2: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("construccionM2", "builtAreaM2", "construccion_m2"),
    )
    descripcion: Optional[str] = Field(
        None, min_length=1, validation_alias=AliasChoices("descripcion", "description")
    )
    imagenes: Optional[list[str]] = Field(None, validation_alias=AliasChoices("imagenes", "images"))

    @field_validator("tipo", mode="before")
    @classmethod
    def accept_english_category(cls, v: Any) -> Any:
        return _coerce_category(v)

    @field_validator("precio", mode="before")
    @classmethod
    def price_as_text(cls, v: Any) -> Any:
        return _coerce_price(v)

    @field_validator("terreno_m2", "construccion_m2", mode="before")
    @classmethod
    def normalize_areas(cls, v: Any) -> Optional[float]:
        return normalize_area(v)

    @field_validator("imagenes", mode="before")
    @classmethod
    def images_as_list(cls, v: Any) -> list:
        return normalize_images(v)

    @field_validator("titulo", "tipo", "zona", "precio", "descripcion")
    @classmethod
    def not_null(cls, v: Any, info) -> Any:
        """Required fields can be left out of a partial update, not cleared."""
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


# =============================================================================
# Contact Request Model
# =============================================================================

class ContactRequest(BaseModel):
    """
    Contact form submission.

    Fields are deliberately untyped: presence is checked by the contact
    intake so that a missing field yields 400 rather than a schema error.
    """
    model_config = ConfigDict(extra="ignore")

    nombre: Any = Field(None, validation_alias=AliasChoices("nombre", "name"))
    telefono: Any = Field(None, validation_alias=AliasChoices("telefono", "phone"))
    mensaje: Any = Field(None, validation_alias=AliasChoices("mensaje", "message"))


# =============================================================================
# Response Models
# =============================================================================

class ListingResponse(BaseModel):
    """
    A stored listing as served to clients.
    Maps ORM attributes to the wire names.
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    storage_id: str = Field(..., alias="_id")
    sequential_id: int = Field(..., alias="id")
    titulo: str
    tipo: Category
    zona: str
    precio: str
    terreno_m2: Optional[float] = Field(None, alias="terrenoM2")
    construccion_m2: Optional[float] = Field(None, alias="construccionM2")
    descripcion: str
    imagenes: list[str] = Field(default_factory=list)
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        """Stores that drop the offset (SQLite) still hold UTC values."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class OkResponse(BaseModel):
    """Acknowledgement for delete and contact operations."""
    ok: bool = Field(default=True, description="Operation status")


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    error: str = Field(..., description="Error description")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
