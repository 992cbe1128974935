# validators.py
"""
Typed validators for the values the dashboard accepts.

Every validator pre-cleans untrusted strings through the strict sanitization
policy, then applies its format and bounds rules. A rejected value raises
ValidationError with a specific ErrorCode; nothing is coerced into a guess.
"""
import decimal
import html
import re
from typing import Any, Iterable

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shieldinput.models import ErrorCode, FileUpload, ValidationError
from shieldinput.sanitizer import SanitizationPolicy, sanitize_html, sanitize_text

MAX_SAFE_INTEGER = 2**53 - 1
MAX_EMAIL_LENGTH = 320
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILENAME_LENGTH = 255
DEFAULT_ALLOWED_FILE_TYPES = ('image/jpeg', 'image/png', 'application/pdf')
DANGEROUS_SCHEMES = ('javascript:', 'data:', 'vbscript:', 'livescript:')
NULL_ADDRESS = '0x' + '0' * 40

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
_HASH_RE = re.compile(r"0x[0-9a-fA-F]{64}")
_AMOUNT_RE = re.compile(r"\d+(\.\d+)?")
_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_LEADING_MINUS_RE = re.compile(r"[^0-9.]*-")
_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_USERNAME_RE = re.compile(r"[a-zA-Z0-9_-]{3,50}")
# Browsers drop these before reading a scheme
_URL_IGNORED_RE = re.compile(r"^[\x00-\x20]+|[\t\r\n]")
_URL_UNSAFE_RE = re.compile(r"[<>\"\s]")

_url_adapter = TypeAdapter(AnyUrl)


def _require_string(value: Any, field: str, label: str) -> str:
    if value is None or value == '':
        raise ValidationError(f"{label} is required", field, ErrorCode.REQUIRED)
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a string", field, ErrorCode.INVALID_TYPE)
    if not value.strip():
        raise ValidationError(f"{label} is required", field, ErrorCode.REQUIRED)
    return value


def _clean(value: str) -> str:
    return sanitize_html(value.strip(), SanitizationPolicy.STRICT).strip()


def validate_address(value: Any, field: str = 'address') -> str:
    """Return an Ethereum address in lowercase, rejecting the zero address."""
    cleaned = _clean(_require_string(value, field, 'Address'))
    if not _ADDRESS_RE.fullmatch(cleaned):
        raise ValidationError("Invalid Ethereum address format", field, ErrorCode.INVALID_FORMAT)
    cleaned = cleaned.lower()
    if cleaned == NULL_ADDRESS:
        raise ValidationError("Null address not allowed", field, ErrorCode.NULL_ADDRESS)
    return cleaned


def validate_transaction_hash(value: Any, field: str = 'hash') -> str:
    cleaned = _clean(_require_string(value, field, 'Transaction hash'))
    if not _HASH_RE.fullmatch(cleaned):
        raise ValidationError("Invalid transaction hash format", field, ErrorCode.INVALID_FORMAT)
    return cleaned.lower()


def _amount_from_number(value: int | float | decimal.Decimal, field: str) -> str:
    number = decimal.Decimal(repr(value)) if isinstance(value, float) else decimal.Decimal(value)
    if not number.is_finite():
        raise ValidationError("Invalid numeric format", field, ErrorCode.INVALID_FORMAT)
    if number < 0:
        raise ValidationError("Amount cannot be negative", field, ErrorCode.NEGATIVE_VALUE)
    if number > MAX_SAFE_INTEGER:
        raise ValidationError("Amount too large", field, ErrorCode.TOO_LARGE)
    # plain notation, never "1E+20"
    return format(number.copy_abs(), 'f')


def validate_amount(value: Any, field: str = 'amount') -> str:
    """
    Validate a monetary amount given as a number or a string.

    Strings lose every character that is not a digit or a decimal point, but a
    minus sign in front of the digits is rejected rather than dropped.

    Returns:
        str: The amount as a plain decimal string, e.g. "1000000.50"
    """
    if value is None or value == '':
        raise ValidationError("Amount is required", field, ErrorCode.REQUIRED)
    if isinstance(value, bool):
        raise ValidationError("Amount must be a string or number", field, ErrorCode.INVALID_TYPE)
    if isinstance(value, (int, float, decimal.Decimal)):
        cleaned = _amount_from_number(value, field)
    elif isinstance(value, str):
        cleaned = _clean(value)
        if _LEADING_MINUS_RE.match(cleaned):
            raise ValidationError("Amount cannot be negative", field, ErrorCode.NEGATIVE_VALUE)
        cleaned = _NON_NUMERIC_RE.sub('', cleaned)
    else:
        raise ValidationError("Amount must be a string or number", field, ErrorCode.INVALID_TYPE)

    if not _AMOUNT_RE.fullmatch(cleaned):
        raise ValidationError("Invalid numeric format", field, ErrorCode.INVALID_FORMAT)
    if decimal.Decimal(cleaned) > MAX_SAFE_INTEGER:
        raise ValidationError("Amount too large", field, ErrorCode.TOO_LARGE)
    return cleaned


def validate_email(value: Any, field: str = 'email') -> str:
    email = _require_string(value, field, 'Email')
    cleaned = sanitize_html(email.strip().lower(), SanitizationPolicy.STRICT).strip()
    if len(cleaned) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email address too long", field, ErrorCode.TOO_LONG)
    if not _EMAIL_RE.fullmatch(cleaned):
        raise ValidationError("Invalid email format", field, ErrorCode.INVALID_FORMAT)
    return cleaned


def validate_username(value: Any, field: str = 'username') -> str:
    cleaned = _clean(_require_string(value, field, 'Username'))
    if not _USERNAME_RE.fullmatch(cleaned):
        raise ValidationError(
            "Username must be 3-50 characters (letters, numbers, underscore, hyphen only)",
            field,
            ErrorCode.INVALID_FORMAT,
        )
    if cleaned[0] in '_-' or cleaned[-1] in '_-':
        raise ValidationError(
            "Username cannot start or end with underscore or hyphen",
            field,
            ErrorCode.INVALID_FORMAT,
        )
    return cleaned


def validate_url(value: Any, field: str = 'url', required: bool = False) -> str:
    """
    Validate a URL, refusing script-capable schemes.

    The scheme is checked before the value is parsed, so a parser can never
    normalize a dangerous URL into an accepted one. Empty input returns ""
    unless `required` is set.
    """
    if not required and (value is None or (isinstance(value, str) and not value.strip())):
        return ''
    raw = _require_string(value, field, 'URL').strip()
    unescaped = html.unescape(raw)
    decoded = html.unescape(_clean(raw))

    for candidate in (raw, unescaped, decoded):
        scheme_text = _URL_IGNORED_RE.sub('', candidate).lower()
        if scheme_text.startswith(DANGEROUS_SCHEMES):
            raise ValidationError("Dangerous URL protocol detected", field, ErrorCode.DANGEROUS_PROTOCOL)

    # sanitization may only escape characters; removed markup means this is not a URL
    if decoded != unescaped:
        raise ValidationError("Invalid URL format", field, ErrorCode.INVALID_FORMAT)
    if _URL_UNSAFE_RE.search(raw) or _URL_UNSAFE_RE.search(decoded):
        raise ValidationError("Invalid URL format", field, ErrorCode.INVALID_FORMAT)
    try:
        _url_adapter.validate_python(raw)
    except PydanticValidationError:
        raise ValidationError("Invalid URL format", field, ErrorCode.INVALID_FORMAT) from None
    # returned as typed, so validating the result again gives the same answer
    return raw


def validate_file(
    file: Any,
    allowed_types: Iterable[str] = DEFAULT_ALLOWED_FILE_TYPES,
    field: str = 'file',
) -> FileUpload:
    """
    Check an uploaded file's type, size and name.

    The filename must survive text sanitization unchanged; a name that would
    be altered is rejected instead of being silently renamed.

    Args:
        file: A FileUpload, a mapping, or an object with filename, content_type and size
        allowed_types: Accepted MIME types
        field: Field name reported on failure

    Returns:
        FileUpload: The validated file description
    """
    if file is None:
        raise ValidationError("File is required", field, ErrorCode.REQUIRED)
    try:
        upload = FileUpload.from_upload(file)
    except PydanticValidationError:
        raise ValidationError("Unreadable file description", field, ErrorCode.INVALID_TYPE) from None

    if upload.content_type not in set(allowed_types):
        raise ValidationError(f"File type {upload.content_type} not allowed", field, ErrorCode.INVALID_TYPE)
    if upload.size is None or upload.size > MAX_FILE_SIZE:
        raise ValidationError("File size exceeds 10MB limit", field, ErrorCode.TOO_LARGE)

    filename = sanitize_text(upload.filename, MAX_FILENAME_LENGTH)
    if not filename or filename != upload.filename:
        raise ValidationError("Invalid filename", field, ErrorCode.INVALID_FILENAME)
    return upload
