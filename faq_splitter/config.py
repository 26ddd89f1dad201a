"""Run configuration: column names, tag rules, and output choices."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}
EMPTY_CATEGORY_POLICIES = ("clear", "delete")
DOCUMENT_FORMATS = ("html", "pdf")
INVALID_SHEET_TITLE_CHARS = set("[]:*?/\\")
MAX_SHEET_TITLE_LENGTH = 31

DEFAULT_GROUPING_RULES: dict[str, list[str]] = {
    "FAQ_Ingresantes": ["Ingreso", "Ingresantes", "Art. 7", "Inscripción", "Beca", "CIVU"],
    "FAQ_Alumnos_Examen": ["Alumno", "Examen"],
    "FAQ_Tramites_Equivalencias_SAG": ["Tramites", "Aranceles", "equivalencias", "SAG"],
    "FAQ_Preguntas_frecuentes_generales": ["Oferta Académica", "Postgrados", "Cursos", "FAQ", "Varios"],
}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ColumnNames:
    publishable: str = "Publicable"
    answer: str = "Respuesta"
    updated_answer: str = "Respuesta Actualizada"
    original_tag: str = "Etiqueta Original"
    proposed_tag: str = "Etiqueta Propuesta"

    def required(self) -> list[str]:
        return [
            self.publishable,
            self.answer,
            self.updated_answer,
            self.original_tag,
            self.proposed_tag,
        ]


@dataclass(frozen=True)
class SplitConfig:
    source_sheet: str = "Principal"
    columns: ColumnNames = field(default_factory=ColumnNames)
    tag_separator: str = ";"
    excluded_tag: str = "Sedes"
    grouping_rules: dict[str, list[str]] = field(
        default_factory=lambda: {name: list(words) for name, words in DEFAULT_GROUPING_RULES.items()}
    )
    empty_category_policy: str = "clear"
    document_prefix: str = "Reporte - "
    document_format: str = "html"

    def with_overrides(self, **changes: Any) -> "SplitConfig":
        changes = {key: value for key, value in changes.items() if value is not None}
        return validate_config(replace(self, **changes))


def _sheet_title_problem(name: str) -> str | None:
    if not name.strip():
        return "is blank"
    if len(name) > MAX_SHEET_TITLE_LENGTH:
        return f"is longer than {MAX_SHEET_TITLE_LENGTH} characters"
    bad = sorted(INVALID_SHEET_TITLE_CHARS.intersection(name))
    if bad:
        return f"contains characters not allowed in sheet names: {' '.join(bad)}"
    return None


def validate_config(config: SplitConfig) -> SplitConfig:
    if len(config.tag_separator) != 1:
        raise ConfigError(f"tag_separator must be a single character, got {config.tag_separator!r}")
    if not config.source_sheet.strip():
        raise ConfigError("source_sheet must not be blank")
    if not config.grouping_rules:
        raise ConfigError("grouping_rules must define at least one category")
    seen_names: dict[str, str] = {}
    for name, keywords in config.grouping_rules.items():
        problem = _sheet_title_problem(name)
        if problem:
            raise ConfigError(f"Category name {name!r} {problem}")
        # sheet titles are unique ignoring case
        if name.lower() == config.source_sheet.lower():
            raise ConfigError(f"Category {name!r} has the same name as the source sheet")
        if name.lower() in seen_names:
            raise ConfigError(f"Categories {seen_names[name.lower()]!r} and {name!r} differ only by case")
        seen_names[name.lower()] = name
        if isinstance(keywords, str) or not any(str(word).strip() for word in keywords):
            raise ConfigError(f"Category {name!r} needs a list with at least one keyword")
        # a blank keyword would be a substring of every tag
        if any(not str(word).strip() for word in keywords):
            raise ConfigError(f"Category {name!r} has a blank keyword, which would match every tag")
    for column in config.columns.required():
        if not column.strip():
            raise ConfigError("Column names must not be blank")
    if config.empty_category_policy not in EMPTY_CATEGORY_POLICIES:
        raise ConfigError(
            f"empty_category_policy must be one of {', '.join(EMPTY_CATEGORY_POLICIES)}, "
            f"got {config.empty_category_policy!r}"
        )
    if config.document_format not in DOCUMENT_FORMATS:
        raise ConfigError(
            f"document_format must be one of {', '.join(DOCUMENT_FORMATS)}, got {config.document_format!r}"
        )
    return config


def config_from_dict(payload: dict[str, Any]) -> SplitConfig:
    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a JSON object.")
    known = set(SplitConfig.__dataclass_fields__)
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    values = dict(payload)
    if "columns" in values:
        columns = values["columns"]
        if not isinstance(columns, dict):
            raise ConfigError("columns must be an object mapping roles to header names")
        unknown_columns = sorted(set(columns) - set(ColumnNames.__dataclass_fields__))
        if unknown_columns:
            raise ConfigError(f"Unknown column roles: {', '.join(unknown_columns)}")
        values["columns"] = ColumnNames(**{key: str(value) for key, value in columns.items()})
    if "grouping_rules" in values:
        rules = values["grouping_rules"]
        if not isinstance(rules, dict):
            raise ConfigError("grouping_rules must be an object mapping category names to keyword lists")
        for name, keywords in rules.items():
            if not isinstance(keywords, list):
                raise ConfigError(f"Category {name!r} needs a list of keywords")
        values["grouping_rules"] = {str(name): [str(word) for word in words] for name, words in rules.items()}
    for key in ("source_sheet", "tag_separator", "excluded_tag", "empty_category_policy", "document_prefix", "document_format"):
        if key in values and not isinstance(values[key], str):
            raise ConfigError(f"{key} must be a string")
    return validate_config(SplitConfig(**values))


def load_config(path: Path | None) -> SplitConfig:
    if path is None:
        return validate_config(SplitConfig())
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ConfigError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read config: {exc}") from exc
    return config_from_dict(payload)


def config_to_dict(config: SplitConfig) -> dict[str, Any]:
    return asdict(config)


def starter_config_text() -> str:
    return json.dumps(config_to_dict(SplitConfig()), indent=2, ensure_ascii=False) + "\n"
