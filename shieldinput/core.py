# core.py
import logging
from typing import Any, Mapping

from multidict import MultiDict, MultiDictProxy

from shieldinput.models import FormValidationError, ValidationError, ValidationErrorDetail, ValidationResult
from shieldinput.rules import BaseRule, parse_rule, parse_rules

logger = logging.getLogger(__name__)

RuleSpec = BaseRule | Mapping[str, Any] | str


class FormValidator:
    """
    Runs a fixed set of field rules over an input record.

    Every declared field is evaluated, including fields absent from the
    input, and a failing field never stops the others: the caller gets the
    complete error map in one pass.
    """

    def __init__(self, rules: Mapping[str, RuleSpec]):
        self.rules = parse_rules(rules)

    def _get_value(self, data: Mapping[str, Any], field: str) -> Any:
        if isinstance(data, (MultiDict, MultiDictProxy)):
            return data.getone(field, None)
        return data.get(field)

    def validate(self, data: Mapping[str, Any] | None) -> ValidationResult:
        data = data if data is not None else {}
        sanitized: dict[str, Any] = {}
        errors: dict[str, ValidationErrorDetail] = {}

        for field, rule in self.rules.items():
            value = self._get_value(data, field)
            try:
                sanitized[field] = rule.check(value, field)
            except ValidationError as e:
                logger.debug("Field %r failed %s validation: %s", field, rule.kind, e.code.value)
                e.field = field
                errors[field] = e.to_detail(input_value=value)

        # passing fields stay visible on failure so a form can keep them
        return ValidationResult(is_valid=not errors, errors=errors, sanitized_data=sanitized)

    def validate_or_raise(self, data: Mapping[str, Any] | None) -> dict[str, Any]:
        result = self.validate(data)
        if not result.is_valid:
            raise FormValidationError(result.errors)
        return result.sanitized_data


def validate_form(data: Mapping[str, Any] | None, rules: Mapping[str, RuleSpec]) -> dict[str, Any]:
    """Validate a record against a rule map; raise FormValidationError listing every bad field."""
    return FormValidator(rules).validate_or_raise(data)


def validate_field(value: Any, rule: RuleSpec, field: str | None = None) -> Any:
    """Validate a single value the way the batch validator would."""
    rule = parse_rule(rule)
    return rule.check(value, field or rule.kind)
