"""
Natours Backend — Shared Schema Pieces
========================================

What:  The camelCase base model every API schema derives from, the error
       body documented in OpenAPI, and the success envelope helper.

Envelope:
    {"status": "success", "results": 3, "data": {"tours": [...]}}
    `results` is only present for list responses.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; both accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ErrorResponse(BaseModel):
    """
    Body of every API error response.

    Example:
        {"status": "fail", "message": "Can't find /api/v2 on this server! "}
    """
    status: Literal["fail", "error"] = Field(description="fail for 4xx, error for 5xx")
    message: str = Field(description="Human-readable error description")


def envelope(data: Dict[str, Any], results: Optional[int] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "success"}
    if results is not None:
        body["results"] = results
    body["data"] = data
    return body
