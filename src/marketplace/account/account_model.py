from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from marketplace.utils.common_models import Actor


class UserModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: EmailStr
    role: Actor.Role
    is_active: bool
    is_verified: bool
    ratings_count: int
    average_rating: float
    is_deleted: bool
    created_at: datetime

    def as_actor(self) -> Actor:
        return Actor(user_id=self.id, role=self.role)


class RegisterUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: Actor.Role = Actor.Role.BUYER
