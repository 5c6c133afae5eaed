"""Configuration helpers for the link engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

ICON_TYPES = ("svg", "fontawesome", "custom", "dashicon")
ICON_POSITIONS = ("before", "after")
PROCESSING_MODES = ("server", "client")

DEFAULTS: Dict[str, Any] = {
    "enabled": True,
    "processing_mode": "server",
    "content_types": ["post", "page"],
    "add_icon": True,
    "icon_type": "svg",
    "icon_position": "after",
    "icon_class": "selm-external-icon-svg",
    "icon_svg_file": "icon-external",
    "custom_icon": "",
    "open_new_tab": True,
    "add_nofollow": True,
    "add_noopener": True,
    "exclude_domains": [],
    "exclude_classes": ["no-external"],
    "custom_css": "",
    "debug_mode": False,
}

# camelCase keys understood by the client-side boundary.
SCRIPT_KEYS: Dict[str, str] = {
    "addIcon": "add_icon",
    "iconType": "icon_type",
    "iconClass": "icon_class",
    "iconSvgFile": "icon_svg_file",
    "iconPosition": "icon_position",
    "customIcon": "custom_icon",
    "addNofollow": "add_nofollow",
    "addNoopener": "add_noopener",
    "openNewTab": "open_new_tab",
    "excludeClasses": "exclude_classes",
    "excludeDomains": "exclude_domains",
}

_CHOICES: Dict[str, Tuple[str, ...]] = {
    "icon_type": ICON_TYPES,
    "icon_position": ICON_POSITIONS,
    "processing_mode": PROCESSING_MODES,
}


@dataclass(frozen=True)
class LinkConfig:
    """Immutable snapshot of the options recognised by the engine."""

    enabled: bool = True
    processing_mode: str = "server"
    content_types: Tuple[str, ...] = ("post", "page")
    add_icon: bool = True
    icon_type: str = "svg"
    icon_position: str = "after"
    icon_class: str = "selm-external-icon-svg"
    icon_svg_file: str = "icon-external"
    custom_icon: str = ""
    open_new_tab: bool = True
    add_nofollow: bool = True
    add_noopener: bool = True
    exclude_domains: Tuple[str, ...] = ()
    exclude_classes: Tuple[str, ...] = ("no-external",)
    custom_css: str = ""
    debug_mode: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "LinkConfig":
        """Build a config from snake_case keys, defaulting anything missing."""

        merged: Dict[str, Any] = dict(DEFAULTS)
        for key, value in (data or {}).items():
            if key in DEFAULTS and value is not None:
                merged[key] = value

        values: Dict[str, Any] = {}
        for item in fields(cls):
            default = DEFAULTS[item.name]
            raw = merged[item.name]
            if isinstance(default, bool):
                values[item.name] = _coerce_bool(raw, default)
            elif isinstance(default, list):
                values[item.name] = _coerce_list(raw)
            else:
                text = str(raw).strip() if item.name != "custom_icon" else str(raw)
                choices = _CHOICES.get(item.name)
                if choices and text not in choices:
                    text = default
                values[item.name] = text
        return cls(**values)

    @classmethod
    def from_script_config(cls, data: Mapping[str, Any] | None) -> "LinkConfig":
        """Build a config from the camelCase keys used by client script data."""

        translated = {SCRIPT_KEYS[key]: value for key, value in (data or {}).items() if key in SCRIPT_KEYS}
        return cls.from_mapping(translated)

    def to_script_config(self) -> Dict[str, Any]:
        values = asdict(self)
        return {
            camel: list(values[snake]) if isinstance(values[snake], tuple) else values[snake]
            for camel, snake in SCRIPT_KEYS.items()
        }

    def replace(self, **changes: Any) -> "LinkConfig":
        data = asdict(self)
        data.update(changes)
        return LinkConfig.from_mapping(data)

    @property
    def is_client_mode(self) -> bool:
        return self.processing_mode == "client"


def load_config(path: str | Path | None = None, overrides: Mapping[str, Any] | None = None) -> LinkConfig:
    """Load configuration from YAML, merging with defaults and then ``overrides``."""

    data: Dict[str, Any] = dict(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        merge_into(data, user)

    if overrides:
        merge_into(data, dict(overrides))

    return LinkConfig.from_mapping(data)


def merge_into(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off", ""}:
            return False
    return default


def _coerce_list(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.splitlines()
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = [str(item) for item in value]
    else:
        return ()
    cleaned = []
    for item in items:
        item = item.strip()
        if item and item not in cleaned:
            cleaned.append(item)
    return tuple(cleaned)
