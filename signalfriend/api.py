"""Request parsing and JSON response envelope used by every blueprint."""

from typing import Any, Dict, Optional, Type, TypeVar

from flask import jsonify, request
from pydantic import BaseModel

from signalfriend.errors import ApiError
from signalfriend.utils import MAX_TOKEN_ID, is_valid_address, is_valid_uuid

ModelT = TypeVar("ModelT", bound=BaseModel)

_NO_DATA = object()


def parse_query(model: Type[ModelT]) -> ModelT:
    """Validate the query string; pydantic errors become 400 responses."""
    return model.model_validate(request.args.to_dict())


def parse_body(model: Type[ModelT]) -> ModelT:
    """Validate the JSON body; a missing or non-object body validates as ``{}``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    return model.model_validate(data)


def ok(
    data: Any = _NO_DATA,
    status: int = 200,
    pagination: Optional[Dict[str, int]] = None,
    message: Optional[str] = None,
):
    body: Dict[str, Any] = {"success": True}
    if data is not _NO_DATA:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    if message:
        body["message"] = message
    return jsonify(body), status


def _invalid_param(field: str, message: str) -> ApiError:
    return ApiError.bad_request("Validation failed", [{"field": field, "message": message}])


def path_address(value: str, field: str = "address") -> str:
    """Validate an address path segment and return it lowercased."""
    if not is_valid_address(value):
        raise _invalid_param(field, "Invalid Ethereum address")
    return value.lower()


def path_content_id(value: str) -> str:
    if not is_valid_uuid(value):
        raise _invalid_param("contentId", "Invalid content ID format")
    return value.lower()


def path_token_id(value: str) -> int:
    if not value.isdigit():
        raise _invalid_param("tokenId", "Token ID must be a non-negative integer")
    token_id = int(value)
    if token_id > MAX_TOKEN_ID:
        raise _invalid_param("tokenId", "Token ID is out of range")
    return token_id
