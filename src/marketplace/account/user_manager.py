from typing import Optional

from sqlalchemy.exc import IntegrityError

from marketplace.logger import logger
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.repository.user_repository import UserRepository
from marketplace.account.account_model import RegisterUserRequest, UserModel


class UserManager():
    """User records referenced by the engines; credentials live with the auth provider"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db = db_manager or get_database_manager()

    def register_user(self, request: RegisterUserRequest) -> UserModel:
        email = request.email.lower()
        try:
            with self.db.session_scope() as session:
                user = UserRepository(session).create(name=request.name, email=email, role=request.role.value)
                result = UserModel.model_validate(user)
        except IntegrityError:
            logger.warning(f"[USER_MANAGER] Email already registered: {email}")
            raise ValueError(f"Email '{email}' is already registered")
        logger.info(f"[USER_MANAGER] Registered {result.role.value} {result.id}")
        return result

    def get_user(self, user_id: str) -> Optional[UserModel]:
        with self.db.session_scope() as session:
            user = UserRepository(session).get_by_id(user_id)
            return UserModel.model_validate(user) if user else None
