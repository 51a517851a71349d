"""Daily service capacity per lot."""
from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path

import yaml

from zeladoria.core.errors import ConfigMissing

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

_LOT_KEY = re.compile(r"^(?:lote)?\s*(\d+)$", re.IGNORECASE)


def parse_lot_key(key: object) -> int:
    """Turn a stored config key (``lote1``, ``"1"`` or ``1``) into a lot id."""

    if isinstance(key, bool):
        raise ValueError(f"invalid lot key: {key!r}")
    if isinstance(key, int):
        return key
    match = _LOT_KEY.match(str(key).strip())
    if not match:
        raise ValueError(f"invalid lot key: {key!r}")
    return int(match.group(1))


def lot_key(lot: int) -> str:
    return f"lote{lot}"


def normalise_capacity_config(raw: Mapping[object, object]) -> dict[int, float]:
    config: dict[int, float] = {}
    for key, value in raw.items():
        if value is None:
            continue
        config[parse_lot_key(key)] = float(value)  # type: ignore[arg-type]
    return config


def load_default_capacity(path: Path | None = None) -> dict[int, float]:
    path = path or CONFIG_DIR / "capacity.yaml"
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    return normalise_capacity_config(data.get("production_rate") or {})


class CapacityModel:
    """Resolves a lot to the area units its crew services per working day."""

    def __init__(self, config: Mapping[object, object]) -> None:
        self._config = normalise_capacity_config(config)

    def capacity_for(self, lot: int) -> float:
        try:
            return self._config[lot]
        except KeyError:
            raise ConfigMissing(lot) from None
