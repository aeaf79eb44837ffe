"""
Knowledge tables consumed by the data criteria parser.

The parser never hard-codes which template means what. Four lookup tables
are read from YAML in the knowledge directory and may be replaced wholesale
by passing them to the constructor:

- data_criteria_templates.yaml  template id -> definition/status
- value_set_paths.yaml          template id -> value set / result XPaths
- value_fields.yaml             field role code -> field key
- code_systems.yaml             code system OID -> code system name
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from hqmf.config import get_config


class TemplateDefinition(BaseModel):
    """Definition and status implied by a template identifier."""
    definition: str
    status: str | None = Field(default=None, description="Empty status means none")
    title: str | None = None

    @field_validator("status")
    @classmethod
    def _blank_status(cls, v: str | None) -> str | None:
        return v or None


class ValueSetPath(BaseModel):
    """Where a template keeps its coded value and its result value."""
    valueset_path: str | None = None
    result_path: str | None = None


class KnowledgeBase:
    """
    Lookup tables for template classification and field extraction.

    Tables passed explicitly take precedence over the YAML files.
    """

    TEMPLATES_FILE = "data_criteria_templates.yaml"
    VALUE_SET_PATHS_FILE = "value_set_paths.yaml"
    VALUE_FIELDS_FILE = "value_fields.yaml"
    CODE_SYSTEMS_FILE = "code_systems.yaml"

    # Class-level cache of parsed YAML, keyed by file path
    _yaml_cache: dict[Path, dict] = {}

    def __init__(
        self,
        knowledge_dir: Path | None = None,
        templates: dict[str, dict[str, Any]] | None = None,
        value_set_paths: dict[str, dict[str, Any]] | None = None,
        value_fields: dict[str, str] | None = None,
        code_systems: dict[str, str] | None = None,
    ):
        self.knowledge_dir = knowledge_dir or get_config().knowledge_dir

        raw_templates = templates if templates is not None else self._load(self.TEMPLATES_FILE)
        raw_paths = value_set_paths if value_set_paths is not None else self._load(self.VALUE_SET_PATHS_FILE)

        self.templates = {
            str(tid): TemplateDefinition(**data) for tid, data in raw_templates.items()
        }
        self.value_set_paths = {
            str(tid): ValueSetPath(**data) for tid, data in raw_paths.items()
        }
        self.value_fields = {
            str(code): key for code, key in (
                value_fields if value_fields is not None else self._load(self.VALUE_FIELDS_FILE)
            ).items()
        }
        self.code_systems = {
            str(oid): name for oid, name in (
                code_systems if code_systems is not None else self._load(self.CODE_SYSTEMS_FILE)
            ).items()
        }
        self._definitions = {t.definition for t in self.templates.values()}

    @classmethod
    def _load_yaml(cls, path: Path) -> dict:
        """Load a YAML table, with caching."""
        if path not in cls._yaml_cache:
            if path.exists():
                with open(path, 'r') as f:
                    cls._yaml_cache[path] = yaml.safe_load(f) or {}
            else:
                # Missing tables behave as empty
                cls._yaml_cache[path] = {}
        return cls._yaml_cache[path]

    def _load(self, filename: str) -> dict:
        return self._load_yaml(self.knowledge_dir / filename)

    @classmethod
    def clear_cache(cls) -> None:
        cls._yaml_cache.clear()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def definition_for_template_id(self, template_id: str | None) -> TemplateDefinition | None:
        """Definition/status registered for a template id, if any."""
        if template_id is None:
            return None
        return self.templates.get(template_id)

    def is_known_definition(self, definition: str | None) -> bool:
        """Whether a definition-element value is itself a registered definition."""
        return definition in self._definitions

    def value_set_path_for_template(self, template_id: str | None) -> ValueSetPath | None:
        if template_id is None:
            return None
        return self.value_set_paths.get(template_id)

    def field_for_code(self, code: str | None) -> str | None:
        if code is None:
            return None
        return self.value_fields.get(code)

    def code_system_name(self, oid: str | None) -> str | None:
        if oid is None:
            return None
        return self.code_systems.get(oid)


# Singleton knowledge base
_knowledge: KnowledgeBase | None = None


def get_knowledge() -> KnowledgeBase:
    """Get the default knowledge base (singleton)."""
    global _knowledge
    if _knowledge is None:
        _knowledge = KnowledgeBase()
    return _knowledge


def set_knowledge(knowledge: KnowledgeBase) -> None:
    """Replace the default knowledge base."""
    global _knowledge
    _knowledge = knowledge


def reset_knowledge() -> None:
    """Drop the default knowledge base and the YAML cache."""
    global _knowledge
    _knowledge = None
    KnowledgeBase.clear_cache()
