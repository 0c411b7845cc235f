"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from datetime import date

from casepanel.common.errors import ConfigError


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_str_list(value, ctx: str) -> None:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{ctx} must be a list of strings")


def _assert_str_map(value, ctx: str) -> None:
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConfigError(f"{ctx} must be a mapping of strings")


def _coerce_date(value, ctx: str) -> str:
    # PyYAML already turns unquoted ISO dates into date objects.
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)).isoformat()
    except ValueError as exc:
        raise ConfigError(f"{ctx} must be an ISO date, got {value!r}") from exc


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"source", "normalisation", "reconciliation", "buckets", "output"}
    _assert_required_keys(cfg, top_required, "pipeline config")
    _assert_no_unknown_keys(cfg, top_required, "pipeline config", allow_unknown)

    source_keys = {"listing_url", "raw_base_url", "max_workers"}
    _assert_required_keys(cfg["source"], source_keys, "source")
    _assert_no_unknown_keys(cfg["source"], source_keys, "source", allow_unknown)
    if not isinstance(cfg["source"]["max_workers"], int) or cfg["source"]["max_workers"] < 1:
        raise ConfigError("source.max_workers must be a positive integer")

    norm_keys = {
        "region_aliases",
        "default_subregions",
        "special_subregions",
        "us_state_sentinels",
        "sentinel_region",
        "fallback_region",
    }
    norm = cfg["normalisation"]
    _assert_required_keys(norm, norm_keys, "normalisation")
    _assert_no_unknown_keys(norm, norm_keys, "normalisation", allow_unknown)
    _assert_str_map(norm["region_aliases"], "normalisation.region_aliases")
    _assert_str_map(norm["default_subregions"], "normalisation.default_subregions")
    _assert_str_list(norm["special_subregions"], "normalisation.special_subregions")
    _assert_str_list(norm["us_state_sentinels"], "normalisation.us_state_sentinels")

    _assert_required_keys(cfg["reconciliation"], {"drop_rule"}, "reconciliation")
    drop_rule = cfg["reconciliation"]["drop_rule"]
    _assert_required_keys(drop_rule, {"countries", "cutover"}, "reconciliation.drop_rule")
    _assert_no_unknown_keys(drop_rule, {"countries", "cutover"}, "reconciliation.drop_rule", allow_unknown)
    _assert_str_list(drop_rule["countries"], "reconciliation.drop_rule.countries")
    drop_rule["cutover"] = _coerce_date(drop_rule["cutover"], "reconciliation.drop_rule.cutover")

    bucket_keys = {
        "epicenter_key",
        "epicenter_region",
        "epicenter_label",
        "country_rest_label",
        "country_label",
        "rest_label",
    }
    _assert_required_keys(cfg["buckets"], bucket_keys, "buckets")
    _assert_no_unknown_keys(cfg["buckets"], bucket_keys, "buckets", allow_unknown)

    output_keys = {"panel_filename", "detailed_filename", "coarse_filename"}
    _assert_required_keys(cfg["output"], output_keys, "output")
    _assert_no_unknown_keys(cfg["output"], output_keys, "output", allow_unknown)

    return cfg
