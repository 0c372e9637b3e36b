from __future__ import annotations

from pathlib import Path

import pytest

from dataaccess.domain.models import FieldDefinition, SchemaDescriptor
from dataaccess.errors import ConfigurationError
from dataaccess.registry import Registry
from dataaccess.schema import SchemaLoader

VALID_SCHEMA = {
    "primary": ["note_id"],
    "fields": {
        "note_id": {"type": "number_natural"},
        "note_text": {"type": "text", "displayName": "Text", "required": True},
    },
}


class _CountingLoader(SchemaLoader):
    def __init__(self, schema_dir: Path) -> None:
        super().__init__(schema_dir)
        self.loads = 0

    def load(self, schema: str, table: str) -> SchemaDescriptor:
        self.loads += 1
        return super().load(schema, table)


def _write(directory: Path, name: str, text: str) -> None:
    (directory / f"{name}.json").write_text(text, encoding="utf-8")


def test_loads_descriptor_from_schema_dir(schema_dir) -> None:
    descriptor = SchemaLoader(schema_dir).load("public", "user")

    assert descriptor.primary == ["user_id"]
    assert descriptor.required == ["user_name"]
    assert descriptor.flag == {"active": 1, "admin": 2}
    assert descriptor.connection == "default"
    assert descriptor.fields["user_name"].display_name == "Name"


def test_missing_file(schema_dir) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        SchemaLoader(schema_dir).load("public", "nothing")

    assert excinfo.value.code == "EXCEPTION_SETCONFIG_UNREADABLE"
    assert excinfo.value.context["config_file"] == str(schema_dir / "public_nothing.json")


def test_malformed_json(schema_dir) -> None:
    _write(schema_dir, "public_broken", '{"fields": ')

    with pytest.raises(ConfigurationError) as excinfo:
        SchemaLoader(schema_dir).load("public", "broken")

    assert excinfo.value.code == "EXCEPTION_SETCONFIG_UNREADABLE"


@pytest.mark.parametrize(
    "text",
    [
        '{"primary": ["nope"], "fields": {"note_id": {"type": "text"}}}',
        '{"primary": ["note_id"], "required": ["nope"], "fields": {"note_id": {"type": "text"}}}',
        '{"primary": ["NoteId"], "fields": {"NoteId": {"type": "text"}}}',
        '{"primary": ["note_id"], "fields": {}}',
        '{"fields": {"note_id": {"type": "text"}}}',
    ],
)
def test_structurally_invalid_schema(schema_dir, text) -> None:
    _write(schema_dir, "public_note", text)

    with pytest.raises(ConfigurationError) as excinfo:
        SchemaLoader(schema_dir).load("public", "note")

    assert excinfo.value.code == "EXCEPTION_SETCONFIG_INVALIDMODELCONFIG"


def test_registry_loads_each_schema_once(schema_dir, settings) -> None:
    loader = _CountingLoader(schema_dir)
    registry = Registry(settings=settings, schema_loader=loader)

    first = registry.model_for("user")
    registry.model_for("user")

    assert loader.loads == 1
    assert registry.schema_for(type(first)) is first.schema


def test_field_definition_from_schema() -> None:
    descriptor = SchemaDescriptor.model_validate(VALID_SCHEMA)

    primary = FieldDefinition.from_schema("note_id", descriptor.fields["note_id"], "note_id")
    text = FieldDefinition.from_schema("note_text", descriptor.fields["note_text"], "note_id")

    assert primary.readonly
    assert primary.display_type == "number_natural"
    assert not text.readonly
    assert text.required
    assert text.display_name == "Text"
