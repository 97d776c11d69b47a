from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import jsonify

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    InvalidExpiryError,
    InvalidWorkerIdError,
    LinkExpiredError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def json_error(code: str, status: int, details: Optional[str] = None):
    body = {"error": code}
    if details:
        body["details"] = details
    return jsonify(body), status


def domain_error_response(e: DomainError):
    """Map a domain exception to the JSON error body and HTTP status used by every API route."""
    if isinstance(e, InvalidWorkerIdError):
        return json_error("invalid_worker_id", 400, str(e))
    if isinstance(e, InvalidExpiryError):
        return json_error("invalid_expires", 400, str(e))
    if isinstance(e, ValidationError):
        return json_error("invalid", 400, str(e))
    if isinstance(e, AuthenticationError):
        return json_error("unauthorized", 401, str(e) or None)
    if isinstance(e, AuthorizationError):
        return json_error("forbidden", 403, str(e) or None)
    if isinstance(e, NotFoundError):
        return json_error("not_found", 404, str(e))
    if isinstance(e, LinkExpiredError):
        return json_error("expired", 410, str(e))
    if isinstance(e, StorageError):
        logger.exception("storage failure")
    return json_error("failed", 500, str(e))


def api_view(view):
    """Route decorator: domain errors become JSON error responses, anything else a logged 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            logger.exception("%s failed", view.__name__)
            return json_error("failed", 500, str(e))

    return wrapper
