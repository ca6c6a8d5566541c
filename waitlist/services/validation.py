"""Field and form validation"""
from typing import Dict, Iterable
import re

from waitlist.models.fields import FieldKind, FieldSpec, FieldValidation, FieldValue

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

VALID = FieldValidation(valid=True)


def validate_email(email) -> bool:
    if not isinstance(email, str):
        return False
    return EMAIL_REGEX.match(email) is not None


def _is_empty(value: FieldValue) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def validate_field(spec: FieldSpec, value: FieldValue) -> FieldValidation:
    """
    Validate one value against its field definition

    Args:
        spec: Field definition
        value: Current value (string, bool or None)

    Returns:
        FieldValidation with a message when invalid
    """
    if _is_empty(value):
        if spec.required:
            return FieldValidation(valid=False, message=f"{spec.label} is required")
        return VALID

    if spec.kind == FieldKind.EMAIL:
        if not isinstance(value, str) or not validate_email(value):
            return FieldValidation(valid=False, message="Please enter a valid email address")

    elif spec.kind == FieldKind.CHECKBOX:
        if spec.required and value is not True:
            return FieldValidation(valid=False, message=f"{spec.label} is required")

    return VALID


def validate_form(values: Dict[str, FieldValue], specs: Iterable[FieldSpec]) -> Dict[str, FieldValidation]:
    return {spec.name: validate_field(spec, values.get(spec.name)) for spec in specs}


def is_form_valid(results: Dict[str, FieldValidation]) -> bool:
    return all(result.valid for result in results.values())


def field_errors(results: Dict[str, FieldValidation]) -> Dict[str, str]:
    """Messages of every invalid field, keyed by field name"""
    return {
        name: result.message or "Invalid value"
        for name, result in results.items()
        if not result.valid
    }
