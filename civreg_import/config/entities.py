from __future__ import annotations

from pathlib import Path
from typing import Any

from civreg_import.models.entity import EntityDefinition

from .loader import ConfigError, read_yaml, validate_against_schema

"""Entity definition loading.

The packaged entities.yml describes every built-in record kind. Config may
rename a kind's table and append header spellings; it cannot reorder or drop
the built-in ones.
"""

_CONFIG_DIR = Path(__file__).parent
ENTITIES_PATH = _CONFIG_DIR / "entities.yml"
ENTITIES_SCHEMA_PATH = _CONFIG_DIR / "entities_schema.json"


def _normalize_header(header: str) -> str:
    return " ".join(str(header).split()).upper()


def _build_definition(kind: str, raw: dict[str, Any]) -> EntityDefinition:
    aliases: dict[str, tuple[str, ...]] = {}
    for fname, spellings in raw["aliases"].items():
        ordered: list[str] = []
        # canonical field name as the lowest-priority spelling (app exports)
        for s in [*spellings, fname]:
            s_norm = _normalize_header(s)
            if s_norm not in ordered:
                ordered.append(s_norm)
        aliases[fname] = tuple(ordered)

    natural_key = raw["natural_key"]
    if natural_key not in aliases:
        raise ConfigError(f"entity '{kind}': natural_key '{natural_key}' has no aliases")
    missing_identity = [f for f in raw["identity_fields"] if f not in aliases]
    if missing_identity:
        raise ConfigError(f"entity '{kind}': identity fields without aliases: {missing_identity}")

    return EntityDefinition(
        kind=kind,
        table=raw["table"],
        natural_key=natural_key,
        identity_fields=tuple(raw["identity_fields"]),
        aliases=aliases,
        key_pattern=raw.get("key_pattern"),
        date_fields=dict(raw.get("date_fields") or {}),
        numeric_fields=frozenset(raw.get("numeric_fields") or ()),
        protected_fields=tuple(raw.get("protected_fields") or ()),
        defaults=dict(raw.get("defaults") or {}),
        activity_label=raw.get("activity_label"),
    )


def load_entities(
    path: Path = ENTITIES_PATH, overrides: dict[str, Any] | None = None
) -> dict[str, EntityDefinition]:
    """Load entity definitions, applying per-kind config overrides.

    Raises:
        ConfigError: invalid definitions file, or an override for an unknown kind.
    """
    data = read_yaml(path)
    validate_against_schema(data, ENTITIES_SCHEMA_PATH)

    entities = {kind: _build_definition(kind, raw) for kind, raw in data.items()}

    for kind, override in (overrides or {}).items():
        if kind not in entities:
            raise ConfigError(f"override for unknown entity kind: {kind}")
        entities[kind] = entities[kind].with_overrides(
            table=override.get("table"),
            extra_aliases=override.get("extra_aliases"),
        )
    return entities


def get_entity(kind: str, entities: dict[str, EntityDefinition]) -> EntityDefinition:
    try:
        return entities[kind]
    except KeyError:
        raise ConfigError(
            f"unknown entity kind: {kind} (known: {', '.join(sorted(entities))})"
        ) from None
