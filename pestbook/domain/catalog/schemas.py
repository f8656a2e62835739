"""Service catalog schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

MAX_DURATION_MINUTES = 24 * 60


class ServiceCreate(BaseModel):
    """Schema for creating a catalog service"""

    title: str = Field(..., min_length=1, max_length=120)
    description: str = Field(..., min_length=1, max_length=2000)
    duration_minutes: Optional[int] = Field(None, gt=0, le=MAX_DURATION_MINUTES)
    sort_order: Optional[int] = None
    base_price_cents: Optional[int] = Field(None, ge=0)


class ServiceUpdate(BaseModel):
    """Schema for a partial service update; at least one field is required"""

    title: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    duration_minutes: Optional[int] = Field(None, gt=0, le=MAX_DURATION_MINUTES)
    sort_order: Optional[int] = None
    base_price_cents: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def require_some_field(self):
        if not self.model_fields_set:
            raise ValueError("No fields provided to update")
        return self


class ServiceResponse(BaseModel):
    public_id: str
    title: str
    description: str
    sort_order: int
    base_price_cents: Optional[int] = None
    duration_minutes: Optional[int] = None
    is_active: bool = True

    class Config:
        from_attributes = True
