# sanitizer.py
import enum
import logging
import re
from typing import Any

import nh3

from shieldinput.models import FORBIDDEN_TAGS, SanitizationConfig

logger = logging.getLogger(__name__)

DEFAULT_TEXT_LENGTH = 1000

_FORBIDDEN_TAG_RE = re.compile(
    r"<\s*(" + "|".join(sorted(FORBIDDEN_TAGS)) + r")\b", re.IGNORECASE
)
_EVENT_HANDLER_RE = re.compile(r"<[^>]*?[\s/\"'](on[a-z0-9_-]*)\s*=", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


class SanitizationPolicy(str, enum.Enum):
    STRICT = "strict"
    BASIC = "basic"
    RICH = "rich"

    @property
    def config(self) -> SanitizationConfig:
        return POLICY_CONFIGS[self]


_BASIC_TAGS = frozenset({'p', 'br', 'strong', 'em', 'u', 'i', 'b'})

POLICY_CONFIGS: dict[SanitizationPolicy, SanitizationConfig] = {
    SanitizationPolicy.STRICT: SanitizationConfig(tags=frozenset()),
    SanitizationPolicy.BASIC: SanitizationConfig(tags=_BASIC_TAGS),
    SanitizationPolicy.RICH: SanitizationConfig(
        tags=_BASIC_TAGS | {
            'span', 'div',
            'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
            'ul', 'ol', 'li', 'blockquote', 'pre', 'code',
        },
        attributes={
            '*': frozenset({'class', 'id'}),
            'span': frozenset({'style'}),
            'div': frozenset({'style'}),
        },
    ),
}


def resolve_policy(policy: SanitizationPolicy | str | SanitizationConfig) -> SanitizationConfig:
    if isinstance(policy, SanitizationConfig):
        return policy
    if isinstance(policy, str):
        policy = policy.lower()
    try:
        return SanitizationPolicy(policy).config
    except ValueError:
        raise ValueError(f"Unknown sanitization policy: {policy!r}") from None


def _log_blocked_markup(value: str) -> None:
    tags = {match.lower() for match in _FORBIDDEN_TAG_RE.findall(value)}
    if tags:
        logger.warning("Blocked dangerous tag(s): %s", ", ".join(sorted(tags)))
    handlers = {match.lower() for match in _EVENT_HANDLER_RE.findall(value)}
    if handlers:
        logger.warning("Blocked event handler attribute(s): %s", ", ".join(sorted(handlers)))


def sanitize_html(value: Any, policy: SanitizationPolicy | str | SanitizationConfig = SanitizationPolicy.STRICT) -> str:
    """
    Strip every tag and attribute the policy does not allow.

    Never raises on untrusted input: anything that is not a non-empty string
    becomes an empty string. Re-sanitizing the output is a no-op.

    Args:
        value: Untrusted input, usually a string
        policy: A SanitizationPolicy, its name, or a custom SanitizationConfig

    Returns:
        str: The cleaned HTML fragment
    """
    config = resolve_policy(policy)
    if not value or not isinstance(value, str):
        return ''
    if '<' in value:
        _log_blocked_markup(value)
    try:
        return nh3.clean(value, **config.nh3_kwargs())
    except UnicodeEncodeError:
        # lone surrogates, e.g. from a "\ud800" escape in a JSON body
        logger.warning("Replaced characters that cannot be encoded as UTF-8")
        return nh3.clean(value.encode('utf-8', 'replace').decode('utf-8'), **config.nh3_kwargs())


def sanitize_text(value: Any, max_length: int = DEFAULT_TEXT_LENGTH) -> str:
    """Strict-sanitize free-form text, collapse whitespace and cap its length."""
    if not value or not isinstance(value, str):
        return ''
    cleaned = sanitize_html(value, SanitizationPolicy.STRICT)
    cleaned = _WHITESPACE_RE.sub(' ', cleaned).strip()
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length].strip()
    return cleaned
