"""Error taxonomy for the listing and contact operations."""


class VendecasasError(Exception):
    """Base exception. Carries the client-facing message and HTTP status."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(VendecasasError):
    """Required input missing; raised before the store is touched."""
    status_code = 400


class ListingNotFound(VendecasasError):
    """Update/delete identifier did not resolve to a listing."""
    status_code = 404

    def __init__(self, message: str = "No encontrada"):
        super().__init__(message)


class StoreFailure(VendecasasError):
    """Store operation failed. The message is generic, details are only logged."""
    status_code = 500
