"""
Pydantic models for MongoDB 'users' collection.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from carrental.utils.sanitizers import SafeStr


class UserRegister(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: SafeStr = Field(..., min_length=1)
    email: EmailStr
    tel: SafeStr = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    role: Literal["user", "admin"] = "user"


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
