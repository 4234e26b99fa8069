"""
Database Schemas for the Potion API

The single MongoDB collection ("potion") is described with Pydantic models.
Unknown keys in request bodies are ignored, so only the fields declared here
ever reach the store.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Ratings(BaseModel):
    strength: float
    flavor: float


class PotionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    vendor_id: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    score: Optional[float] = None
    categories: List[str] = Field(default_factory=list)
    ratings: Optional[Ratings] = None


class PotionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    vendor_id: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    score: Optional[float] = None
    categories: Optional[List[str]] = None
    ratings: Optional[Ratings] = None

    @field_validator("name", "categories")
    @classmethod
    def not_null(cls, v):
        # omitted fields never reach validation
        if v is None:
            raise ValueError("may be omitted but not null")
        return v
