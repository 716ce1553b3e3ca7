"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts; the handlers registered here translate them into consistent JSON
responses of the form {"detail": ..., "error_type": ...}.

Exception hierarchy:
    ManaVaultError (base)
    ├── NotFoundError              — entity id absent (404)
    ├── DuplicateKeyError          — create with an id that already exists (409)
    ├── OwnershipError             — acting user does not own the card or chat (403)
    ├── InsufficientResourceError  — no tokens / no mana left (400)
    ├── DuplicateEmailError        — email already registered (409)
    ├── InvalidCredentialsError    — login rejected (401)
    └── DecryptionError            — malformed ciphertext or key mismatch

DecryptionError has no handler on purpose: it is always caught at the
identity codec boundary and turned into a fallback value.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class ManaVaultError(Exception):
    """Base exception for all ManaVault domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class NotFoundError(ManaVaultError):
    """
    Raised when a requested entity does not exist.

    Attributes:
        entity: Entity name ("card", "user", "set", "mana_state").
        key: The id that was looked up.
    """

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity.replace('_', ' ').capitalize()} {key} not found")


class DuplicateKeyError(ManaVaultError):
    """
    Raised when a record is created under a key that is already stored.

    Attributes:
        entity: Entity name ("card", "user", "set", "mana_state", "saved_chat").
        key: The id that already exists.
    """

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity.replace('_', ' ').capitalize()} {key} already exists")


class OwnershipError(ManaVaultError):
    """
    Raised when a user acts on something they do not own: a card that is not
    in their collection, or another user's saved chat.
    """

    def __init__(self, key: str, detail: str | None = None):
        self.key = key
        super().__init__(detail or f"Card {key} is not in your collection")


class InsufficientResourceError(ManaVaultError):
    """
    Raised when an operation needs a token or mana the user does not have.

    Attributes:
        resource: "mana_reload_tokens", "mana_increase_tokens" or "mana".
        available: The amount currently held (always 0 today, kept for clients).
    """

    def __init__(self, resource: str, detail: str, available: int = 0):
        self.resource = resource
        self.available = available
        super().__init__(detail)


class DuplicateEmailError(ManaVaultError):
    """Raised when attempting to register with an email that's already in use."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


class InvalidCredentialsError(ManaVaultError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Invalid credentials")


class DecryptionError(ManaVaultError):
    """Raised when an encrypted field is malformed or no configured key opens it."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": f"{exc.entity}_not_found"},
        )

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(
        request: Request, exc: DuplicateKeyError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": f"{exc.entity}_exists"},
        )

    @app.exception_handler(OwnershipError)
    async def ownership_handler(
        request: Request, exc: OwnershipError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": exc.detail, "error_type": "not_owned"},
        )

    @app.exception_handler(InsufficientResourceError)
    async def insufficient_resource_handler(
        request: Request, exc: InsufficientResourceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,  # user-actionable: buy or wait for more tokens/mana
            content={
                "detail": exc.detail,
                "error_type": "insufficient_resource",
                "resource": exc.resource,
                "available": exc.available,
            },
        )

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(
        request: Request, exc: DuplicateEmailError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "duplicate_email"},
        )

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "error_type": "invalid_credentials"},
        )
