from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator


class Tier(str, Enum):
    free = "free"
    premium = "premium"


class User(BaseModel):
    id: str
    email: str
    password_hash: str
    subscription_tier: Tier = Tier.free
    recipes_generated: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "subscriptionTier": self.subscription_tier.value,
            "recipesGenerated": self.recipes_generated,
        }


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()
