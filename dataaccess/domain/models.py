"""
Domain models for the data-access layer.

Defines the structure of a model schema descriptor (as stored in
``<schema_dir>/<schema>_<table>.json``) and the immutable per-field
descriptor derived from it. Both are pydantic models so schema files are
validated structurally on load.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FIELD_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}$")


class FieldSchema(BaseModel):
    """
    Raw declaration of one column inside a schema file.
    """

    type: str = Field(..., min_length=1, description="DataType name, e.g. 'text' or 'number_natural'.")
    display_name: str = Field("", alias="displayName")
    display_type: Optional[str] = Field(None, alias="displayType")
    required: bool = False
    min: int = 0
    max: int = 0
    unique: bool = False
    foreign: Union[List[Any], Dict[str, Any]] = Field(default_factory=list)
    enum: str = ""
    readonly: bool = False
    default: Any = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SchemaDescriptor(BaseModel):
    """
    Representation of a complete model schema file.
    """

    fields: Dict[str, FieldSchema] = Field(..., min_length=1)
    primary: List[str] = Field(..., min_length=1)
    required: List[str] = Field(default_factory=list)
    flag: Dict[str, int] = Field(default_factory=dict)
    connection: str = "default"

    model_config = ConfigDict(extra="ignore")

    @field_validator("fields")
    @classmethod
    def _check_field_names(cls, fields: Dict[str, FieldSchema]) -> Dict[str, FieldSchema]:
        invalid = [name for name in fields if not FIELD_NAME_PATTERN.match(name)]
        if invalid:
            raise ValueError(f"invalid field name(s): {', '.join(sorted(invalid))}")
        return fields

    @model_validator(mode="after")
    def _check_references(self) -> "SchemaDescriptor":
        unknown_primary = [name for name in self.primary if name not in self.fields]
        if unknown_primary:
            raise ValueError(f"primary key references unknown field(s): {', '.join(unknown_primary)}")
        unknown_required = [name for name in self.required if name not in self.fields]
        if unknown_required:
            raise ValueError(f"required references unknown field(s): {', '.join(unknown_required)}")
        return self


class FieldDefinition(BaseModel):
    """
    Immutable descriptor of one column, derived from a SchemaDescriptor.
    """

    name: str
    display_name: str = ""
    type: str
    display_type: str = ""
    required: bool = False
    min: int = 0
    max: int = 0
    unique: bool = False
    foreign: Union[List[Any], Dict[str, Any]] = Field(default_factory=list)
    readonly: bool = False
    enum: str = ""
    default_value: Any = None

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": False,
    }

    @classmethod
    def from_schema(cls, name: str, field: FieldSchema, primary_key: str) -> "FieldDefinition":
        return cls(
            name=name,
            display_name=field.display_name,
            type=field.type,
            display_type=field.display_type or field.type,
            required=field.required,
            min=field.min,
            max=field.max,
            unique=field.unique,
            foreign=field.foreign,
            readonly=field.readonly or name == primary_key,
            enum=field.enum,
            default_value=field.default,
        )


__all__ = ["FieldSchema", "SchemaDescriptor", "FieldDefinition", "FIELD_NAME_PATTERN"]
