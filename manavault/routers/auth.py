"""
Authentication router — register, login, refresh and current-user endpoints.

Endpoints:
  POST /auth/register  — Register a new user and get a token
  POST /auth/login     — Authenticate and get a token
  POST /auth/refresh   — Exchange a valid token for a fresh one
  GET  /auth/me        — The authenticated user's decrypted profile

The token is the encrypted, signed credential from TokenIssuer; clients send
it back as "Authorization: Bearer <token>".

Plaintext passwords and emails exist only in memory while the request is
processed; they are hashed/encrypted before any storage call and never
logged.
"""

from fastapi import APIRouter, Depends, status

from manavault.crypto import FieldCipher
from manavault.dependencies import (
    get_cipher,
    get_clock,
    get_current_user,
    get_repository,
    get_token_issuer,
)
from manavault.repository.base import Repository
from manavault.schemas.auth import AuthResponse, TokenResponse, UserLoginRequest, UserRegisterRequest
from manavault.schemas.user import PublicUserView, UserRecord
from manavault.security import TokenIssuer
from manavault.services import auth_service
from manavault.services.identity_service import decrypt_user_for_response
from manavault.services.mana_service import Clock

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: UserRegisterRequest,
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
    issuer: TokenIssuer = Depends(get_token_issuer),
    today: Clock = Depends(get_clock),
):
    """
    Register a new collector.

    - **email**: Valid email, not already registered (case-insensitive)
    - **password**: At least 8 characters with upper, lower and a digit
    - **username**: Optional display name (stored encrypted)

    New users start with one mana reload token.
    """
    user, token = await auth_service.register(
        repo,
        cipher,
        issuer,
        email=request.email,
        password=request.password,
        username=request.username,
        today=today,
    )
    return AuthResponse(user=decrypt_user_for_response(cipher, user), token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
    issuer: TokenIssuer = Depends(get_token_issuer),
    today: Clock = Depends(get_clock),
):
    """
    Authenticate with email and password.

    The first login of each day grants a mana reload token; the balance
    after the grant is capped at 5.
    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 24 hours).
    """
    user, token = await auth_service.login(
        repo,
        cipher,
        issuer,
        email=request.email,
        password=request.password,
        today=today,
    )
    return AuthResponse(user=decrypt_user_for_response(cipher, user), token=token)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh the session token",
)
async def refresh(
    user: UserRecord = Depends(get_current_user),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    Issue a new token with a full lifetime. The current token must still be
    valid; an expired one means logging in again.
    """
    return TokenResponse(token=auth_service.refresh_token(issuer, user))


@router.get(
    "/me",
    response_model=PublicUserView,
    summary="Get the authenticated user",
)
async def me(
    user: UserRecord = Depends(get_current_user),
    cipher: FieldCipher = Depends(get_cipher),
):
    return decrypt_user_for_response(cipher, user)
