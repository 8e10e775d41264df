"""Password hashing and bearer-token helpers."""

from dataclasses import dataclass
from datetime import timedelta

import bcrypt
import jwt

from minilibrary.core.clock import utcnow
from minilibrary.core.errors import UnauthorizedError
from minilibrary.models.models import Role


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as carried in the token."""

    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bool(bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8")))
    except ValueError:
        return False


def create_access_token(
    user_id: int,
    role: Role,
    secret: str,
    expires_in: timedelta,
    algorithm: str = "HS256",
) -> str:
    now = utcnow()
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Principal:
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired.")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token.")
    try:
        role = Role(payload.get("role"))
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid token.")
    return Principal(id=user_id, role=role)


def authorize(principal: Principal, required: Role) -> bool:
    """Every known role may act as a User; only Admin may act as Admin."""
    if required is Role.USER:
        return principal.role in (Role.USER, Role.ADMIN)
    if required is Role.ADMIN:
        return principal.role is Role.ADMIN
    raise ValueError(f"Unhandled role: {required!r}")
