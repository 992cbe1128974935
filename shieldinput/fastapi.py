# shieldinput/fastapi.py
from typing import Any, Mapping

from fastapi import Depends, HTTPException, Request
from multidict import MultiDict
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from shieldinput.core import FormValidator, RuleSpec
from shieldinput.csp import CSP_HEADER, build_policy, generate_nonce
from shieldinput.models import ErrorCode, ValidationResult


class ValidationDependency:
    """
    FastAPI dependency that validates and sanitizes a request body.

    Attributes:
        validator (FormValidator): Batch validator built from the rule map
        raise_on_error (bool): Raise HTTP 422 instead of returning a failed result
    """

    def __init__(self, rules: Mapping[str, RuleSpec], raise_on_error: bool = False):
        """
        Initialize the dependency with validation rules.

        Args:
            rules: Field name to rule mapping, see shieldinput.rules
            raise_on_error: Turn a failed validation into an HTTPException
        """
        self.validator = FormValidator(rules)
        self.raise_on_error = raise_on_error

    async def __call__(self, request: Request) -> ValidationResult:
        """
        Execute full validation for an incoming request.

        Args:
            request: FastAPI request object

        Returns:
            ValidationResult containing sanitized data or per-field errors
        """
        data = await get_request_data(request)
        result = self.validator.validate(data)
        if self.raise_on_error and not result.is_valid:
            raise HTTPException(status_code=422, detail=error_payload(result))
        return result


def error_payload(result: ValidationResult) -> dict[str, Any]:
    """Serializable body for a rejected form, one entry per invalid field."""
    return {
        'code': ErrorCode.FORM_ERRORS.value,
        'errors': {
            field: detail.model_dump(mode='json', exclude={'input_value'})
            for field, detail in result.errors.items()
        },
    }


async def get_request_data(request: Request) -> Mapping[str, Any]:
    """
    Extract request data from different content types.

    Handles:
    - JSON payloads (application/json), which must be an object
    - Form data (x-www-form-urlencoded)
    - Multipart form data (multipart/form-data), returned as a MultiDict

    Args:
        request: FastAPI request object

    Returns:
        Mapping of field names to raw values
    """
    content_type = request.headers.get('content-type', '')

    if content_type.startswith('application/json'):
        try:
            payload = await request.json()
        except ValueError:
            # JSONDecodeError, UnicodeDecodeError and oversized integers
            raise HTTPException(status_code=400, detail="Malformed JSON body") from None
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="JSON body must be an object")
        return payload

    if content_type.startswith(('application/x-www-form-urlencoded', 'multipart/form-data')):
        form_data = await request.form()
        return MultiDict(form_data.multi_items())

    return {}


def validation_dependency(
    rules: Mapping[str, RuleSpec],
    raise_on_error: bool = False,
) -> Depends:
    """
    Create FastAPI dependency for request validation.

    Usage:
    @app.post("/transfer")
    async def transfer(result: ValidationResult = validation_dependency({
        "to": "address", "amount": "amount", "memo": {"kind": "text", "max_length": 140},
    })):
        ...

    Args:
        rules: Field name to rule mapping
        raise_on_error: Respond 422 with the error map instead of returning it

    Returns:
        FastAPI dependency
    """
    return Depends(ValidationDependency(rules, raise_on_error))


class ContentSecurityPolicyMiddleware(BaseHTTPMiddleware):
    """
    Issues a fresh nonce for every request.

    The nonce is exposed as `request.state.csp_nonce` for templates and the
    matching Content-Security-Policy header is set on the response, unless
    the endpoint already set one.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        nonce = generate_nonce()
        request.state.csp_nonce = nonce
        response = await call_next(request)
        if CSP_HEADER not in response.headers:
            response.headers[CSP_HEADER] = build_policy(nonce)
        return response
