"""Request payload validation.

Wraps pydantic validation so that every malformed payload surfaces as the
service-level ValidationError, carrying one entry per offending field.
"""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_PYDANTIC_MESSAGE_PREFIXES = ("Value error, ", "Assertion failed, ")


def _clean_message(message: str) -> str:
    for prefix in _PYDANTIC_MESSAGE_PREFIXES:
        if message.startswith(prefix):
            return message[len(prefix) :]
    return message


def format_validation_errors(error: PydanticValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{"field", "message"}`` entries."""
    errors = []
    for err in error.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        errors.append({"field": field, "message": _clean_message(err.get("msg", "Invalid value"))})
    return errors


def parse_payload(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against ``model``.

    Raises:
        ValidationError: If ``data`` is not a JSON object or fails validation
    """
    if isinstance(data, model):
        return data
    if not isinstance(data, dict):
        raise ValidationError("body", "Request body must be a JSON object")

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = format_validation_errors(e)
        logger.debug(f"{model.__name__} rejected: {errors}")
        first = errors[0]
        raise ValidationError(first["field"], first["message"], errors=errors) from None
