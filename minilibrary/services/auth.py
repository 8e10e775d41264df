from typing import Optional
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minilibrary.core.config import Settings
from minilibrary.core.errors import ConflictError, UnauthorizedError
from minilibrary.core.security import create_access_token, hash_password, verify_password
from minilibrary.models import models
from minilibrary.schemas import schemas

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def register(self, user_in: schemas.UserCreate, role: models.Role = models.Role.USER) -> models.User:
        """Public sign-up always yields a User; admins come from `minilibrary seed` or a direct call."""
        user = models.User(
            username=user_in.username,
            first_name=user_in.first_name,
            last_name=user_in.last_name,
            email=user_in.email,
            password_hash=hash_password(user_in.password, rounds=self.settings.bcrypt_rounds),
            role=role,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email or username already registered")
        self.db.refresh(user)
        logger.info(f"Registered user id={user.id} role={user.role.value}")
        return user

    def authenticate(self, identifier: str, password: str) -> Optional[models.User]:
        user = (
            self.db.query(models.User)
            .filter(or_(models.User.username == identifier, models.User.email == identifier.lower()))
            .first()
        )
        if user and verify_password(password, user.password_hash):
            return user
        return None

    def login(self, identifier: str, password: str) -> str:
        user = self.authenticate(identifier, password)
        if not user:
            raise UnauthorizedError("Invalid credentials")
        return create_access_token(
            user.id,
            user.role,
            secret=self.settings.jwt_secret,
            expires_in=self.settings.jwt_expiry,
            algorithm=self.settings.jwt_algorithm,
        )
