from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_DIETARY_TAGS = ["balanced"]
DEFAULT_COOKING_TIME = 30
DEFAULT_SERVINGS = 4


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateRequest(CamelModel):
    ingredients: list[str] = Field(..., min_length=1, max_length=50)
    dietary_preferences: Optional[list[str]] = Field(default=None, max_length=20)
    cooking_time: Optional[int] = Field(default=None, gt=0, le=24 * 60)
    servings: Optional[int] = Field(default=None, gt=0, le=100)

    @field_validator("ingredients")
    @classmethod
    def _strip_ingredients(cls, v: list[str]) -> list[str]:
        cleaned = [i.strip() for i in v if i and i.strip()]
        if not cleaned:
            raise ValueError("at least one ingredient is required")
        return cleaned

    def to_params(self) -> "GenerationParams":
        """Fill defaults only for fields the caller omitted."""
        return GenerationParams(
            ingredients=self.ingredients,
            dietary_preferences=(
                list(DEFAULT_DIETARY_TAGS)
                if self.dietary_preferences is None
                else self.dietary_preferences
            ),
            cooking_time=DEFAULT_COOKING_TIME if self.cooking_time is None else self.cooking_time,
            servings=DEFAULT_SERVINGS if self.servings is None else self.servings,
        )


class GenerationParams(BaseModel):
    ingredients: list[str]
    dietary_preferences: list[str]
    cooking_time: int
    servings: int


class GeneratedRecipe(BaseModel):
    title: str
    ingredients: list[str]
    instructions: list[str]
    dietary_tags: list[str]
    cooking_time: int
    servings: int


class Recipe(CamelModel):
    id: str
    user_id: str
    title: str
    ingredients: list[str] = []
    instructions: list[str] = []
    dietary_tags: list[str] = []
    cooking_time: int
    servings: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
