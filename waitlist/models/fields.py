"""Form field Pydantic models"""
from pydantic import BaseModel, ConfigDict, model_validator
from typing import Optional, List, Dict, Union
from enum import Enum


FieldValue = Union[str, bool, None]
FormValues = Dict[str, FieldValue]


class FieldKind(str, Enum):
    """Input kinds supported by the form"""
    TEXT = "text"
    EMAIL = "email"
    SELECT = "select"
    CHECKBOX = "checkbox"


class FieldSpec(BaseModel):
    """Definition of a single form field"""
    model_config = ConfigDict(frozen=True)

    name: str
    kind: FieldKind = FieldKind.TEXT
    label: str
    required: bool = False
    options: Optional[List[str]] = None
    is_metadata: bool = False
    placeholder: Optional[str] = None
    default_value: FieldValue = None

    @model_validator(mode="after")
    def check_options(self):
        if self.options is not None and self.kind != FieldKind.SELECT:
            raise ValueError(f"Field '{self.name}': options are only allowed on select fields")
        return self

    def initial_value(self) -> FieldValue:
        """Value the field holds before the visitor edits it"""
        if self.kind == FieldKind.CHECKBOX:
            return self.default_value is True
        if self.default_value is not None:
            return self.default_value
        return ""


class FieldValidation(BaseModel):
    """Outcome of validating one field"""
    valid: bool
    message: Optional[str] = None


DEFAULT_FIELDS = [
    FieldSpec(
        name="email",
        kind=FieldKind.EMAIL,
        label="Email",
        required=True,
        placeholder="your@email.com",
    )
]
