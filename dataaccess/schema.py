"""
Schema file discovery and structural validation.

A model declares ``SCHEMA`` and ``TABLE``; its descriptor lives at
``<schema_dir>/<SCHEMA>_<TABLE>.json``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from dataaccess.domain.models import SchemaDescriptor
from dataaccess.errors import ConfigurationError
from dataaccess.utils.logging import get_logger

log = get_logger(__name__)


class SchemaLoader:
    """Reads and validates schema descriptors from a directory."""

    def __init__(self, schema_dir: Union[str, Path]) -> None:
        self.schema_dir = Path(schema_dir)

    def path_for(self, schema: str, table: str) -> Path:
        return self.schema_dir / f"{schema}_{table}.json"

    def load(self, schema: str, table: str) -> SchemaDescriptor:
        path = self.path_for(schema, table)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(
                f"Cannot read model schema {path}: {exc}",
                code="EXCEPTION_SETCONFIG_UNREADABLE",
                context={"config_file": str(path)},
            ) from exc
        try:
            descriptor = SchemaDescriptor.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid model schema {path}",
                code="EXCEPTION_SETCONFIG_INVALIDMODELCONFIG",
                context={"config_file": str(path), "errors": exc.errors(include_url=False)},
            ) from exc
        log.debug("Loaded model schema", extra={"config_file": str(path), "fields": len(descriptor.fields)})
        return descriptor


__all__ = ["SchemaLoader"]
