import logging
from typing import Optional

from src.booking.core.settings import settings
from src.booking.domain.contracts.uow import UoW
from src.booking.domain.entities.user import User
from src.booking.domain.errors import NotFound

logger = logging.getLogger(__name__)


def _is_super_admin(user: User) -> bool:
    return bool(settings.SUPER_ADMIN_EMAIL) and user.email.lower() == settings.SUPER_ADMIN_EMAIL.lower()


class UsersService:
    def __init__(self, uow: UoW):
        self.uow = uow

    def get_profile(self, user_id: int) -> User:
        user = self.uow.users.get_by_id(user_id)
        if not user:
            raise NotFound("User not found.")
        return user

    def list_users(self, page: int = 1, limit: int = 10, role: Optional[str] = None):
        return self.uow.users.list(page=page, limit=limit, role=role)

    def get_user(self, user_id: int) -> Optional[User]:
        return self.uow.users.get_by_id(user_id)

    def set_active(self, user_id: int, is_active: bool, actor_id: int) -> User:
        try:
            user = self.uow.users.get_by_id(user_id)
            if not user:
                raise NotFound("User not found.")
            if _is_super_admin(user) and not is_active:
                raise PermissionError("The super admin cannot be deactivated.")
            if user.id == actor_id and not is_active:
                raise ValueError("You cannot deactivate your own account.")

            updated = self.uow.users.set_active(user_id, is_active)
            self.uow.commit()

        except Exception:
            self.uow.rollback()
            raise

        logger.info("user %s active=%s by admin %s", user_id, is_active, actor_id)
        return updated

    def delete_user(self, user_id: int, actor_id: int) -> None:
        try:
            user = self.uow.users.get_by_id(user_id)
            if not user:
                raise NotFound("User not found.")
            if _is_super_admin(user):
                raise PermissionError("The super admin cannot be deleted.")
            if user.id == actor_id:
                raise ValueError("You cannot delete your own account.")

            self.uow.users.delete(user_id)
            self.uow.commit()

        except Exception:
            self.uow.rollback()
            raise

        logger.info("user %s deleted by admin %s", user_id, actor_id)
