# models.py
import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

# Removed under every policy, whatever a config lists.
FORBIDDEN_TAGS = frozenset({'script', 'iframe', 'object', 'embed', 'form', 'input', 'button'})
EVENT_HANDLER_PREFIX = 'on'
DEFAULT_CLEAN_CONTENT_TAGS = frozenset({'script', 'style'})


class ErrorCode(str, enum.Enum):
    REQUIRED = "REQUIRED"
    INVALID_FORMAT = "INVALID_FORMAT"
    NEGATIVE_VALUE = "NEGATIVE_VALUE"
    TOO_LARGE = "TOO_LARGE"
    TOO_LONG = "TOO_LONG"
    NULL_ADDRESS = "NULL_ADDRESS"
    DANGEROUS_PROTOCOL = "DANGEROUS_PROTOCOL"
    INVALID_TYPE = "INVALID_TYPE"
    INVALID_FILENAME = "INVALID_FILENAME"
    FORM_ERRORS = "FORM_ERRORS"


class ValidationErrorDetail(BaseModel):
    field: str | None = None
    message: str
    code: ErrorCode
    input_value: Any = None


class ValidationError(ValueError):
    """A single rule rejected a value."""

    def __init__(self, message: str, field: str | None = None, code: ErrorCode = ErrorCode.INVALID_FORMAT):
        super().__init__(message)
        self.message = message
        self.field = field
        self.code = ErrorCode(code)

    def to_detail(self, input_value: Any = None) -> ValidationErrorDetail:
        return ValidationErrorDetail(
            field=self.field,
            message=self.message,
            code=self.code,
            input_value=input_value,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, field={self.field!r}, code={self.code.value})"


class FormValidationError(ValidationError):
    """One or more fields of a form failed; `errors` holds every one of them."""

    def __init__(self, errors: dict[str, ValidationErrorDetail], message: str = "Form validation failed"):
        super().__init__(message, field=None, code=ErrorCode.FORM_ERRORS)
        self.errors = errors

    def messages(self) -> dict[str, str]:
        return {field: detail.message for field, detail in self.errors.items()}


class ValidationResult(BaseModel):
    is_valid: bool
    errors: dict[str, ValidationErrorDetail] = {}
    sanitized_data: dict[str, Any] = {}


class SanitizationConfig(BaseModel):
    """Allow-lists handed to nh3.

    `attributes` maps a tag name (or "*" for any tag) to the attribute names
    kept on it. Forbidden tags and event-handler attributes are dropped from
    the lists when the config is built, so no config can let them through.
    """
    tags: frozenset[str] = frozenset()
    attributes: dict[str, frozenset[str]] = {}
    url_schemes: frozenset[str] | None = None
    strip_comments: bool = True
    link_rel: str | None = 'noopener noreferrer'
    clean_content_tags: frozenset[str] = DEFAULT_CLEAN_CONTENT_TAGS

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='before')
    @classmethod
    def _drop_dangerous_entries(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        content_tags = {tag.lower() for tag in data.get('clean_content_tags') or DEFAULT_CLEAN_CONTENT_TAGS}
        # ammonia refuses a tag that is both kept and content-cleaned
        data['clean_content_tags'] = content_tags
        data['tags'] = {tag.lower() for tag in data.get('tags') or ()} - FORBIDDEN_TAGS - content_tags
        data['attributes'] = {
            tag.lower(): {
                attr.lower() for attr in attrs
                if not attr.lower().startswith(EVENT_HANDLER_PREFIX)
            }
            for tag, attrs in (data.get('attributes') or {}).items()
            if tag.lower() not in FORBIDDEN_TAGS
        }
        return data

    def nh3_kwargs(self) -> dict[str, Any]:
        return {
            'tags': set(self.tags),
            'attributes': {tag: set(attrs) for tag, attrs in self.attributes.items()},
            'url_schemes': set(self.url_schemes) if self.url_schemes is not None else None,
            'strip_comments': self.strip_comments,
            'link_rel': self.link_rel,
            'clean_content_tags': set(self.clean_content_tags),
        }


class FileUpload(BaseModel):
    filename: str | None = None
    content_type: str | None = None
    size: int | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_upload(cls, upload: Any) -> 'FileUpload':
        """Build from any file-like object exposing filename, content_type and size."""
        if isinstance(upload, cls):
            return upload
        if isinstance(upload, dict):
            return cls(**upload)
        return cls(
            filename=getattr(upload, 'filename', None),
            content_type=getattr(upload, 'content_type', None),
            size=getattr(upload, 'size', None),
        )
