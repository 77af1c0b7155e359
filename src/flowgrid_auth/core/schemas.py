"""Shared schema base for the JSON API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base model that speaks camelCase on the wire.

    Fields are declared in snake_case and accepted or emitted as
    camelCase (``access_token`` <-> ``accessToken``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(APIModel):
    """Plain acknowledgement."""

    message: str


class Pagination(APIModel):
    """Pagination block attached to list responses."""

    total: int
    page: int
    limit: int
    pages: int
