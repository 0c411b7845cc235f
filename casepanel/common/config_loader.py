"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from casepanel.common.errors import ConfigError
from casepanel.common.fs import read_yaml
from casepanel.common.schema import validate_pipeline_config
from casepanel.pipeline.aggregate import BucketScheme
from casepanel.pipeline.normalise import NormalisationRules
from casepanel.pipeline.reconcile import DropRule

CONFIG_FILENAME = "pipeline.yml"


@dataclass(frozen=True)
class ConfigBundle:
    source: dict
    normalisation: NormalisationRules
    drop_rule: DropRule
    buckets: BucketScheme
    output: dict


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def build_bundle(cfg: dict) -> ConfigBundle:
    norm = cfg["normalisation"]
    drop_rule = cfg["reconciliation"]["drop_rule"]
    return ConfigBundle(
        source=dict(cfg["source"]),
        normalisation=NormalisationRules(
            region_aliases=dict(norm["region_aliases"]),
            default_subregions=dict(norm["default_subregions"]),
            special_subregions=frozenset(norm["special_subregions"]),
            us_state_sentinels=frozenset(norm["us_state_sentinels"]),
            sentinel_region=norm["sentinel_region"],
            fallback_region=norm["fallback_region"],
        ),
        drop_rule=DropRule(
            countries=frozenset(drop_rule["countries"]),
            cutover=date.fromisoformat(drop_rule["cutover"]),
        ),
        buckets=BucketScheme(**cfg["buckets"]),
        output=dict(cfg["output"]),
    )


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    return build_bundle(validate_pipeline_config(cfg, allow_unknown=allow_unknown))
