"""Identity types shared by every resource service."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Fixed set of caller roles carried in the identity token."""

    ADMIN = "admin"
    SUPPORT = "support"
    MODERATOR = "moderator"
    USER = "user"


class Caller(BaseModel):
    """Authenticated identity of the current request."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1, description="Subject of the identity token")
    role: Role = Field(description="Role claim of the identity token")
