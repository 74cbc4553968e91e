"""
Shared helpers for document models and route handlers
ObjectId handling, camelCase wire models, pagination
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, FrozenSet

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stringify_object_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


# ObjectId stored in Mongo, plain string on the wire
PyObjectId = Annotated[str, BeforeValidator(_stringify_object_id)]


def to_object_id(value: str) -> ObjectId:
    """Parse a path/body id, 400 when it is not a valid ObjectId"""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


class ApiModel(BaseModel):
    """
    Base for every document and request/response model

    Documents are stored snake_case; the HTTP surface speaks camelCase.
    Both spellings are accepted on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartialUpdate(ApiModel):
    """
    Base for PUT bodies applied with exclude_unset

    An omitted field is left alone. An explicit null is only accepted for
    fields listed in nullable_fields; anything else would $set None into a
    required document field.
    """
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{name} cannot be null")
        return self


# ==================== PAGINATION ====================

class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


class MessageResponse(ApiModel):
    message: str
