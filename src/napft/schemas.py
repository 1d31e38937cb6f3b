"""Shared pydantic base for API payloads.

The public JSON contract is camelCase (``tokenId``, ``isListed``); Python code
uses snake_case field names and either form is accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
