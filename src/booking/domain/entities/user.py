from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.booking.domain.enums import UserRole

@dataclass
class User:
    id: int
    email: str
    role: UserRole
    email_verified: bool
    is_active: bool
    created_at: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.first_name or self.email.split("@")[0]

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
