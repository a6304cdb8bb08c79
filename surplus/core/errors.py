# surplus/core/errors.py


class SurplusError(Exception):
    """Base class for errors raised by the listing and claim services."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(SurplusError):
    """Listing or profile does not exist."""

    status_code = 404


class ValidationError(SurplusError):
    """Malformed or out-of-range input (quantity, missing field, bad radius)."""

    status_code = 422


class StaleStateError(SurplusError):
    """Listing is no longer available at claim time; re-fetch and retry."""

    status_code = 409


class StoreError(SurplusError):
    """The document store failed (network or availability problem)."""

    status_code = 503


class DuplicateError(SurplusError):
    """A unique index refused the write."""

    status_code = 409
