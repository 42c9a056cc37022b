"""
Authentication Service
User authentication and user management
"""
from typing import List, Optional
from datetime import datetime
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.core.database import unit_of_work
from retailops.core.exceptions import ReferenceNotFound, ValidationError
from retailops.core.permissions import RoleName
from retailops.core.security import get_password_hash, verify_password
from retailops.models.auth import User, Role
from retailops.models.catalog import Warehouse
from retailops.schemas.auth import UserCreate

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("retailops.security")


class AuthService:
    """Service for authentication and user management operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        return self.db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()

    def get_roles(self, names: List[str]) -> List[Role]:
        """Resolve role names; unknown names are rejected"""
        for name in names:
            try:
                RoleName(name)
            except ValueError:
                raise ValidationError(f"Unknown role {name}")
        roles = list(self.db.execute(select(Role).where(Role.name.in_(names))).scalars())
        missing = set(names) - {role.name for role in roles}
        if missing:
            raise ReferenceNotFound("Role", ", ".join(sorted(missing)))
        return roles

    def create_user(self, user_data: UserCreate, is_superuser: bool = False) -> User:
        """Create new user with the given roles"""
        with unit_of_work(self.db):
            if self.get_user_by_email(user_data.email) is not None:
                raise ValidationError(f"User {user_data.email} already exists")
            if user_data.assigned_store_id is not None and self.db.get(Warehouse, user_data.assigned_store_id) is None:
                raise ReferenceNotFound("Warehouse", user_data.assigned_store_id)

            user = User(
                email=user_data.email.strip().lower(),
                full_name=user_data.full_name,
                phone_number=user_data.phone_number,
                assigned_store_id=user_data.assigned_store_id,
                password_hash=get_password_hash(user_data.password),
                is_active=True,
                is_superuser=is_superuser,
            )
            user.roles = self.get_roles(user_data.roles)
            self.db.add(user)
            self.db.flush()

        logger.info(f"User created: {user.email} with roles {sorted(user.role_names)}")
        return user

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authenticate user credentials"""
        user = self.get_user_by_email(email)
        if not user or not user.is_active:
            security_logger.warning(f"Failed login for {email}")
            return None

        if not verify_password(password, user.password_hash):
            security_logger.warning(f"Failed login for {email}: incorrect password")
            return None

        with unit_of_work(self.db):
            user.last_login = datetime.utcnow()

        security_logger.info(f"User {user.id} logged in")
        return user
