"""Content-hash cache keys.

A key is ``<domain>-<sha256>`` where the digest covers the canonical JSON of
the fields that discriminate entries in that domain. Sets are encoded as
sorted lists and mappings with sorted keys, so equal inputs always produce
the same key regardless of ordering.
"""

from __future__ import annotations

import dataclasses
import hashlib
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

import msgspec
import msgspec.structs
from pydantic import BaseModel

import slc
from slc.config import Settings

DOMAINS = ("template", "fragment", "usage", "system", "git")


def canonicalize(value: Any) -> Any:
    """Reduce a value to plain JSON-compatible data with a stable ordering."""
    if isinstance(value, BaseModel):
        return canonicalize(value.model_dump())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return canonicalize(dataclasses.asdict(value))
    if isinstance(value, msgspec.Struct):
        return canonicalize(msgspec.structs.asdict(value))
    if isinstance(value, dict):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        items = [canonicalize(v) for v in value]
        return sorted(items, key=lambda v: msgspec.json.encode(v, order="sorted"))
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Enum):
        return canonicalize(value.value)
    return value


def digest(fields: Any) -> str:
    """sha256 hex digest of the canonical encoding of ``fields``."""
    encoded = msgspec.json.encode(canonicalize(fields), order="sorted")
    return hashlib.sha256(encoded).hexdigest()


def make_key(domain: str, fields: Any) -> str:
    if domain not in DOMAINS:
        raise ValueError(f"Unknown cache domain: {domain}")
    return f"{domain}-{digest(fields)}"


# =============================================================================
# Discriminating fields per domain
# =============================================================================


def template_fields(
    features: Iterable[str],
    style: Any,
    logging: bool,
    feature_configs: Mapping[str, Any],
    settings: Settings,
    optimize: bool = True,
) -> dict:
    """Everything that can change a compiled script's text.

    Config fields only count through what the pipeline derives from them: the
    known features, the effective style and each enabled encoder's
    sub-config. Two configs that compile to the same script share a key.
    """
    return {
        "features": list(features),
        "style": style,
        "logging": logging,
        "encoders": dict(feature_configs),
        "settings": settings,
        "optimize": optimize,
        "version": slc.__version__,
    }


def fragment_fields(
    feature: str, feature_config: Any, style: Any, settings: Settings
) -> dict:
    """An encoder's output depends on its sub-config, the style and settings."""
    return {
        "feature": feature,
        "config": feature_config,
        "style": style,
        "settings": settings,
    }


def usage_fields(command: Iterable[str]) -> dict:
    return {"command": list(command)}


def system_fields(cpu: bool, memory: bool, load: bool) -> dict:
    return {"cpu": cpu, "memory": memory, "load": load}


def git_fields(command: Iterable[str]) -> dict:
    return {"command": list(command)}
