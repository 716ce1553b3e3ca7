"""
FastAPI dependencies: injected collaborators, authentication and roles.

Collaborators built once at startup (main.lifespan) and injected per request:

  get_cipher          -> the FieldCipher on app.state
  get_repository      -> SqlRepository over the request session, or the shared
                         JsonFileRepository, depending on STORAGE_BACKEND
  get_clock           -> callable returning today's date (tests override it)
  get_ledger          -> ManaLedger over the repository and clock
  get_token_issuer    -> TokenIssuer over the cipher

Authentication chain:

  get_current_user (bearer token -> UserRecord)
      └── require_admin (UserRecord with a decrypted admin flag of "true")

Every protected endpoint declares one of these as a parameter; if the token
is missing, expired, tampered with or undecryptable the request is rejected
with the same 401 before the route handler runs.
"""

from datetime import date

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.config import settings
from manavault.crypto import FieldCipher
from manavault.database import get_db
from manavault.repository.base import Repository
from manavault.repository.sql import SqlRepository
from manavault.schemas.user import UserRecord
from manavault.security import TokenIssuer
from manavault.services import auth_service, identity_service
from manavault.services.chat_service import InteractionDetector, KeywordInteractionDetector
from manavault.services.mana_service import Clock, ManaLedger


# Looks for "Authorization: Bearer <token>"
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_cipher(request: Request) -> FieldCipher:
    return request.app.state.cipher


def get_token_issuer(cipher: FieldCipher = Depends(get_cipher)) -> TokenIssuer:
    return TokenIssuer(
        cipher,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


def get_clock() -> Clock:
    return date.today


async def get_repository(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Repository:
    """
    The storage backend for this request.

    The SQL session is opened lazily by SQLAlchemy, so the JSON backend never
    touches the database even though get_db is part of the chain.
    """
    if settings.STORAGE_BACKEND == "json":
        return request.app.state.repository
    return SqlRepository(db)


def get_ledger(
    repo: Repository = Depends(get_repository),
    today: Clock = Depends(get_clock),
) -> ManaLedger:
    return ManaLedger(repo, today)


def get_interaction_detector() -> InteractionDetector:
    return KeywordInteractionDetector()


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    repo: Repository = Depends(get_repository),
    cipher: FieldCipher = Depends(get_cipher),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserRecord:
    """
    Resolve the bearer token to the authenticated user.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    user = await auth_service.authenticate(repo, cipher, issuer, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(
    user: UserRecord = Depends(get_current_user),
    cipher: FieldCipher = Depends(get_cipher),
) -> UserRecord:
    """
    Require the authenticated user to be an admin.

    Raises:
        HTTPException 403: If the decrypted admin flag is not "true".
    """
    if not identity_service.is_user_admin(cipher, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
