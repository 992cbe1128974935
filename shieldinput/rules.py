# rules.py
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from shieldinput.models import ErrorCode, ValidationError
from shieldinput.sanitizer import DEFAULT_TEXT_LENGTH, sanitize_text
from shieldinput.validators import (
    validate_address,
    validate_amount,
    validate_email,
    validate_transaction_hash,
    validate_url,
    validate_username,
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BaseRule(BaseModel):
    """A validator kind bound to its options. Subclasses implement `apply`."""
    required: bool = True

    model_config = ConfigDict(frozen=True, extra='forbid')

    def check(self, value: Any, field: str) -> Any:
        if not self.required and _is_blank(value):
            return ''
        return self.apply(value, field)

    def apply(self, value: Any, field: str) -> Any:
        raise NotImplementedError


class EmailRule(BaseRule):
    kind: Literal['email'] = 'email'

    def apply(self, value: Any, field: str) -> str:
        return validate_email(value, field)


class UsernameRule(BaseRule):
    kind: Literal['username'] = 'username'

    def apply(self, value: Any, field: str) -> str:
        return validate_username(value, field)


class AddressRule(BaseRule):
    kind: Literal['address'] = 'address'

    def apply(self, value: Any, field: str) -> str:
        return validate_address(value, field)


class AmountRule(BaseRule):
    kind: Literal['amount'] = 'amount'

    def apply(self, value: Any, field: str) -> str:
        return validate_amount(value, field)


class HashRule(BaseRule):
    kind: Literal['hash'] = 'hash'

    def apply(self, value: Any, field: str) -> str:
        return validate_transaction_hash(value, field)


class UrlRule(BaseRule):
    kind: Literal['url'] = 'url'
    required: bool = False

    def apply(self, value: Any, field: str) -> str:
        return validate_url(value, field, required=True)


class TextRule(BaseRule):
    """Free text: markup stripped, whitespace collapsed, cut at `max_length`."""
    kind: Literal['text'] = 'text'
    required: bool = False
    max_length: int = Field(DEFAULT_TEXT_LENGTH, gt=0)

    def apply(self, value: Any, field: str) -> str:
        if value is not None and not isinstance(value, str):
            raise ValidationError("Text must be a string", field, ErrorCode.INVALID_TYPE)
        text = sanitize_text(value, self.max_length)
        if not text and self.required:
            raise ValidationError("Text is required", field, ErrorCode.REQUIRED)
        return text


FieldRule = Annotated[
    Union[EmailRule, UsernameRule, AddressRule, AmountRule, HashRule, UrlRule, TextRule],
    Field(discriminator='kind'),
]

_rule_adapter = TypeAdapter(FieldRule)


def parse_rule(rule: BaseRule | Mapping[str, Any] | str) -> BaseRule:
    """
    Accept a rule model, a mapping such as {"kind": "text", "max_length": 50},
    or a bare kind name such as "email".
    """
    if isinstance(rule, BaseRule):
        return rule
    if isinstance(rule, str):
        rule = {'kind': rule}
    return _rule_adapter.validate_python(dict(rule))


def parse_rules(rules: Mapping[str, BaseRule | Mapping[str, Any] | str]) -> dict[str, BaseRule]:
    return {field: parse_rule(rule) for field, rule in rules.items()}
