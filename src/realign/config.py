from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models import InputFormat
from .policy import HTML_POLICY, TEXT_POLICY, NormalizationPolicy


@dataclass(frozen=True)
class AlignmentConfig:
    input_format: str = "text"  # 'text' | 'html'
    # If true, a request where any match cannot be located fails as a whole.
    require_all_matches: bool = False


@dataclass(frozen=True)
class CompositeConfig:
    wrapper: str = "div"  # e.g. 'div' or 'div class="part"'; the closing tag is the first word
    id_prefix: str = "region"


@dataclass(frozen=True)
class RealignConfig:
    alignment: AlignmentConfig = AlignmentConfig()
    text_policy: NormalizationPolicy = field(default_factory=lambda: TEXT_POLICY)
    html_policy: NormalizationPolicy = field(default_factory=lambda: HTML_POLICY)
    composite: CompositeConfig = CompositeConfig()
    log_path: str | None = None
    log_level: str = "info"  # 'debug' | 'info' | 'warning' | 'error'

    @property
    def input_format(self) -> InputFormat:
        return InputFormat(self.alignment.input_format.upper())

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    def policy_for(self, input_format: InputFormat) -> NormalizationPolicy:
        return self.html_policy if input_format == InputFormat.HTML else self.text_policy


def _normalize_choice(value: Any, *, field_name: str, allowed: set[str], default: str) -> str:
    raw = str(default if value is None else value).strip().lower()
    if raw not in allowed:
        allowed_list = ", ".join(sorted(allowed))
        raise ValueError(f"Invalid value for {field_name}: {raw!r}. Allowed: {allowed_list}")
    return raw


def _load_policy(data: dict[str, Any], *, field_name: str, base: NormalizationPolicy) -> NormalizationPolicy:
    equivalents_raw = data.get("equivalents", base.equivalents) or {}
    if not isinstance(equivalents_raw, dict):
        raise ValueError(f"Invalid value for {field_name}.equivalents: expected a mapping")
    equivalents: dict[str, str] = {}
    for key, value in equivalents_raw.items():
        key_s, value_s = str(key), str(value)
        if len(key_s) != 1:
            raise ValueError(f"Invalid key in {field_name}.equivalents: {key_s!r} must be a single character")
        equivalents[key_s] = value_s
    return NormalizationPolicy(
        decode_entities=bool(data.get("decode_entities", base.decode_entities)),
        nbsp_as_space=bool(data.get("nbsp_as_space", base.nbsp_as_space)),
        collapse_whitespace=bool(data.get("collapse_whitespace", base.collapse_whitespace)),
        equivalents=equivalents,
        trust_unchanged_entity_slices=bool(
            data.get("trust_unchanged_entity_slices", base.trust_unchanged_entity_slices)
        ),
    )


def _resolve_optional_path(base_dir: Path, value: Any) -> str | None:
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def load_config(path: str | Path) -> RealignConfig:
    cfg_path = Path(path)
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}

    alignment_data = data.get("alignment", {}) or {}
    normalization_data = data.get("normalization", {}) or {}
    composite_data = data.get("composite", {}) or {}

    alignment = AlignmentConfig(
        input_format=_normalize_choice(
            alignment_data.get("input_format", "text"),
            field_name="alignment.input_format",
            allowed={"text", "html"},
            default="text",
        ),
        require_all_matches=bool(alignment_data.get("require_all_matches", False)),
    )

    text_policy = _load_policy(
        normalization_data.get("text", {}) or {},
        field_name="normalization.text",
        base=TEXT_POLICY,
    )
    html_policy = _load_policy(
        normalization_data.get("html", {}) or {},
        field_name="normalization.html",
        base=HTML_POLICY,
    )

    wrapper = str(composite_data.get("wrapper", "div")).strip()
    if not wrapper or not wrapper.split(" ")[0].isalnum():
        raise ValueError(f"Invalid value for composite.wrapper: {wrapper!r}")
    composite = CompositeConfig(
        wrapper=wrapper,
        id_prefix=str(composite_data.get("id_prefix", "region")),
    )

    log_level = _normalize_choice(
        data.get("log_level", "info"),
        field_name="log_level",
        allowed={"debug", "info", "warning", "error"},
        default="info",
    )

    return RealignConfig(
        alignment=alignment,
        text_policy=text_policy,
        html_policy=html_policy,
        composite=composite,
        log_path=_resolve_optional_path(cfg_path.parent, data.get("log_path")),
        log_level=log_level,
    )
