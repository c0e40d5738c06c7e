import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from cseg.config import settings
from cseg.core.exceptions import unauthorized

security = HTTPBearer(auto_error=False)

GAME_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_game_code(length: int = 6) -> str:
    """Generate a join code without look-alike characters (no I, O, 0, 1)."""
    return "".join(secrets.choice(GAME_CODE_ALPHABET) for _ in range(length))


def generate_player_id() -> str:
    return f"p_{secrets.token_hex(6)}"


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.jwt_expiration_hours)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_player_token(player_id: str, game_code: str) -> str:
    return create_access_token({"sub": player_id, "game": game_code})


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError as e:
        raise unauthorized("Invalid or expired token") from e


async def get_token_player_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Extract the player id from an optional Bearer token.

    LAN clients that predate tokens identify themselves with ``playerId`` in
    the request body, so a missing header is not an error.
    """
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    player_id = payload.get("sub")
    if player_id is None:
        raise unauthorized("Invalid token payload")
    return player_id
