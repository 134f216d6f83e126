"""
Pydantic models for MongoDB 'providers' collection.
"""

from datetime import datetime

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from carrental.utils.sanitizers import SafeStr

# Filterable fields and the type query values are coerced to
FIELD_TYPES = {
    "_id": ObjectId,
    "name": str,
    "address": str,
    "tel": str,
    "createdAt": datetime,
}


class ProviderCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: SafeStr = Field(..., min_length=1, max_length=50)
    address: SafeStr = Field(..., min_length=1)
    tel: SafeStr = Field(..., min_length=1)


class ProviderUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: SafeStr | None = Field(None, min_length=1, max_length=50)
    address: SafeStr | None = Field(None, min_length=1)
    tel: SafeStr | None = Field(None, min_length=1)
