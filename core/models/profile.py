from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileUpdate(BaseModel):
    """Inbound fitness-profile payload for `POST /user/userProfile/{id}`."""

    username: str = Field(..., min_length=3, max_length=64)
    age: float = Field(..., gt=0)
    weight: float = Field(..., gt=0)          # kg
    height: float = Field(..., gt=0)          # cm
    objective: str = Field(..., min_length=1)
    training_days: int = Field(..., gt=0, le=7)
    profiling_form: int = Field(..., ge=0)

    model_config = ConfigDict(allow_inf_nan=False)

    @field_validator("username", "objective", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("age", "weight", "height", "training_days", "profiling_form", mode="before")
    @classmethod
    def _no_bool(cls, v):
        if isinstance(v, bool):
            raise ValueError("must be a number")
        return v


class Profile(BaseModel):
    id: int
    user_id: int
    age: float
    weight: float
    height: float
    objective: str
    training_days: int
    routine_status: str

    model_config = ConfigDict(from_attributes=True)
