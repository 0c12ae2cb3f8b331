from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from redeemable.settings import DEFAULT_CODE_LENGTH, MAX_CODE_ATTEMPTS

# hex digest length of MD5; generated codes cannot be longer
MAX_CODE_LENGTH = 32


class RedeemableOptions(BaseModel):
    # duration until a new redeemable expires, counted from created_at. None = never expires
    valid_for: Optional[timedelta] = None

    code_length: int = Field(default=DEFAULT_CODE_LENGTH, ge=1, le=MAX_CODE_LENGTH)

    # keep a caller-supplied code instead of generating one
    allow_custom_code: bool = False

    # False = single-use, True = one redemption per redeemer
    multi_use: bool = False

    max_code_attempts: int = Field(default=MAX_CODE_ATTEMPTS, ge=1)

    @field_validator("valid_for")
    @classmethod
    def _positive_duration(cls, value: Optional[timedelta]) -> Optional[timedelta]:
        if value is not None and value <= timedelta(0):
            raise ValueError("valid_for must be a positive duration")
        return value

    class Config:
        frozen = True
