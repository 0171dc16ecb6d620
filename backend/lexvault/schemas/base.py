# backend/lexvault/schemas/base.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CamelSchema(BaseModel):
    """Exposed to the frontend in camelCase, accepted in either case"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class TimestampMixin(BaseModel):
    created_at: Optional[datetime] = None
