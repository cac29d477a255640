import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from vendecasas.config import Settings, get_settings
from vendecasas.contact import ContactIntake
from vendecasas.errors import ListingNotFound, ValidationFailure, VendecasasError
from vendecasas.listings import ListingRepository
from vendecasas.logging_utils import setup_logging, RequestLoggingMiddleware, log_request_data
from vendecasas.metrics import record_store_operation, get_metrics, get_metrics_content_type
from vendecasas.schemas import ContactRequest, ErrorResponse, HealthResponse, ListingResponse, OkResponse
from vendecasas.storage import Database, get_db
from vendecasas.utils import parse_identifier

logger = logging.getLogger(__name__)

router = APIRouter()

ROUTE_NOT_FOUND = "Ruta no encontrada"


# =============================================================================
# Dependencies
# =============================================================================

def get_listing_repository(request: Request, db: Session = Depends(get_db)) -> ListingRepository:
    settings: Settings = request.app.state.settings
    return ListingRepository(db, id_allocation_attempts=settings.ID_ALLOCATION_ATTEMPTS)


def get_contact_intake(db: Session = Depends(get_db)) -> ContactIntake:
    return ContactIntake(db)


# Any JSON value: a non-object body fails listing validation like any other bad payload
ListingPayload = Annotated[Any, Body()]


# =============================================================================
# Root & Health Check Routes
# =============================================================================

@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "API Vendecasas funcionando ✅"


@router.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
def health_ready(request: Request, response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the store is reachable and the
    schema is applied, otherwise 503.
    """
    if not request.app.state.database.check_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )
    return HealthResponse(status="ready")


# =============================================================================
# Listing Routes
# =============================================================================

LISTING_ERRORS = {
    404: {"model": ErrorResponse, "description": "Listing not found"},
    500: {"model": ErrorResponse, "description": "Store failure"},
}


@router.get(
    "/api/propiedades",
    response_model=list[ListingResponse],
    responses={500: LISTING_ERRORS[500]},
)
def list_listings(
    request: Request,
    repo: ListingRepository = Depends(get_listing_repository),
) -> list[ListingResponse]:
    """All listings, ordered by sequential id ascending. No filtering or pagination."""
    log_request_data(request, operation="list")

    listings = repo.list()

    record_store_operation("list", "ok")
    return [ListingResponse.model_validate(listing) for listing in listings]


@router.post(
    "/api/propiedades",
    response_model=ListingResponse,
    responses={500: LISTING_ERRORS[500]},
)
def create_listing(
    request: Request,
    payload: ListingPayload = None,
    repo: ListingRepository = Depends(get_listing_repository),
) -> ListingResponse:
    """
    Create a listing and allocate its sequential id.

    Missing or invalid fields are reported like any other store failure (500).
    """
    log_request_data(request, operation="create")

    listing = repo.create({} if payload is None else payload)

    log_request_data(request, listing_id=listing.sequential_id, result="created")
    record_store_operation("create", "ok")
    return ListingResponse.model_validate(listing)


@router.put(
    "/api/propiedades/{listing_id}",
    response_model=ListingResponse,
    responses=LISTING_ERRORS,
)
def update_listing(
    listing_id: str,
    request: Request,
    payload: ListingPayload = None,
    repo: ListingRepository = Depends(get_listing_repository),
) -> ListingResponse:
    """
    Partially update a listing.

    `listing_id` is the sequential id when numeric, the storage id otherwise.
    """
    log_request_data(request, operation="update", listing_id=listing_id)

    listing = repo.update(parse_identifier(listing_id), {} if payload is None else payload)

    record_store_operation("update", "ok")
    return ListingResponse.model_validate(listing)


@router.delete(
    "/api/propiedades/{listing_id}",
    response_model=OkResponse,
    responses=LISTING_ERRORS,
)
def delete_listing(
    listing_id: str,
    request: Request,
    repo: ListingRepository = Depends(get_listing_repository),
) -> OkResponse:
    """Delete one listing by sequential id (numeric) or storage id."""
    log_request_data(request, operation="delete", listing_id=listing_id)

    repo.delete(parse_identifier(listing_id))

    record_store_operation("delete", "ok")
    return OkResponse()


@router.delete(
    "/api/propiedades",
    response_model=OkResponse,
    responses={500: LISTING_ERRORS[500]},
)
def delete_all_listings(
    request: Request,
    repo: ListingRepository = Depends(get_listing_repository),
) -> OkResponse:
    """Delete every listing. No confirmation step."""
    log_request_data(request, operation="delete_all")

    removed = repo.delete_all()

    log_request_data(request, removed=removed)
    record_store_operation("delete_all", "ok")
    return OkResponse()


# =============================================================================
# Contact Route
# =============================================================================

@router.post(
    "/api/contacto",
    response_model=OkResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
)
def create_contact(
    request: Request,
    payload: Annotated[Any, Body()] = None,
    intake: ContactIntake = Depends(get_contact_intake),
) -> OkResponse:
    """Store a contact-form message. Requires nombre, telefono and mensaje."""
    log_request_data(request, operation="contact")

    # Anything but a JSON object carries none of the required fields
    body = ContactRequest.model_validate(payload) if isinstance(payload, dict) else ContactRequest()
    intake.create(body.nombre, body.telefono, body.mensaje)

    record_store_operation("contact", "ok")
    return OkResponse()


# =============================================================================
# Metrics Route
# =============================================================================

@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


# =============================================================================
# Exception Handlers
# =============================================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


async def handle_vendecasas_error(request: Request, exc: VendecasasError) -> JSONResponse:
    if isinstance(exc, ListingNotFound):
        result = "not_found"
    elif isinstance(exc, ValidationFailure):
        result = "invalid"
    else:
        result = "error"

    operation = getattr(request.state, "extra_log_data", {}).get("operation")
    if operation:
        record_store_operation(operation, result)
    log_request_data(request, result=result)

    return _error(exc.status_code, exc.message)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unmatched path or method: every unrouted combination is a 404
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return _error(status.HTTP_404_NOT_FOUND, ROUTE_NOT_FOUND)
    return _error(exc.status_code, str(exc.detail))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Malformed request body: {exc.errors()}")
    return _error(status.HTTP_400_BAD_REQUEST, "Cuerpo de la solicitud inválido")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno del servidor")


# =============================================================================
# Application Factory
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: create tables; a store failure is logged, not fatal
    - Shutdown: release store connections
    """
    database: Database = app.state.database
    if not database.init_db():
        logger.error("Store unavailable at startup, requests will fail until it recovers")
    yield
    database.dispose()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the API around an explicitly constructed store handle.

    Args:
        settings: Defaults to the cached environment settings
        database: Defaults to a Database built from settings.DATABASE_URL
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Vendecasas API",
        description="Property listings and contact messages",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(VendecasasError, handle_vendecasas_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(router)
    return app


app = create_app()
