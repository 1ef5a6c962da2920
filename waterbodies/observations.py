"""
Observation records.
Wraps crowd-sourced Eye on Water (EOW) point features in a typed record, and indexes them
by observation code and by owner.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from loguru import logger

from waterbodies.errors import MalformedGeometry

Coords = Tuple[float, float]

DEFAULT_RECENT_MEASUREMENTS = 20

# Attributes interpreted by the pipeline; everything else is kept in `extra`
KNOWN_ATTRIBUTES = (
    "fu_value",
    "date_photo",
    "device_model",
    "device_platform",
    "application",
    "user_n_code",
    "image",
)


@dataclass(frozen=True)
class ObservationAttributes:
    """Typed view of an observation's property bag."""
    fu_value: Optional[int] = None
    date_photo: Optional[str] = None
    device_model: Optional[str] = None
    device_platform: Optional[str] = None
    application: Optional[str] = None
    user_n_code: Optional[str] = None
    image: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_properties(cls, properties: Optional[dict]) -> "ObservationAttributes":
        properties = dict(properties or {})
        known = {k: properties.pop(k, None) for k in KNOWN_ATTRIBUTES}
        return cls(fu_value=_as_int(known.pop("fu_value")), **known, extra=properties)

    def as_dict(self) -> dict:
        """Flatten back into a property bag."""
        out = {k: getattr(self, k) for k in KNOWN_ATTRIBUTES}
        out.update(self.extra)
        return out


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer fu_value {value!r}")
        return None


@dataclass(frozen=True, eq=False)
class Observation:
    """
    A single water-quality observation.

    Identity is the observation code, not the coordinate: two observations
    are equal when their codes are equal.
    """
    code: str
    coordinates: Coords
    attributes: ObservationAttributes = field(default_factory=ObservationAttributes)
    native: Any = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Observation):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)

    @property
    def x(self) -> float:
        return self.coordinates[0]

    @property
    def y(self) -> float:
        return self.coordinates[1]

    @property
    def fu_value(self) -> Optional[int]:
        return self.attributes.fu_value

    @property
    def date_photo(self) -> Optional[str]:
        return self.attributes.date_photo

    @classmethod
    def from_feature(cls, feature: Any, fallback_id: Optional[str] = None) -> "Observation":
        """
        Wrap a GeoJSON-like point feature.

        Accepts a dict with 'geometry'/'properties' (and optional 'id') or any object
        exposing __geo_interface__ as a Feature.

        Raises:
            MalformedGeometry: If the feature has no usable point coordinate
        """
        raw = feature.__geo_interface__ if hasattr(feature, "__geo_interface__") else feature
        if not isinstance(raw, dict):
            raise MalformedGeometry(f"Not a feature: {feature!r}")
        geometry = raw.get("geometry") or {}
        coords = geometry.get("coordinates") if isinstance(geometry, dict) else None
        if not isinstance(coords, (list, tuple)) or len(coords) < 2:
            raise MalformedGeometry(f"Point feature has no coordinate: {coords!r}")
        try:
            x, y = float(coords[0]), float(coords[1])
        except (TypeError, ValueError) as e:
            raise MalformedGeometry(f"Non-numeric coordinate {coords!r}") from e
        if not (math.isfinite(x) and math.isfinite(y)):
            raise MalformedGeometry(f"Non-finite coordinate {coords!r}")

        properties = raw.get("properties") or {}
        code = properties.get("n_code") or raw.get("id") or fallback_id
        if code is None:
            code = f"{x}+{y}"
        return cls(
            code=str(code),
            coordinates=(x, y),
            attributes=ObservationAttributes.from_properties(properties),
            native=feature,
        )


def observations_to_frame(observations: Sequence[Observation]) -> pd.DataFrame:
    """One row per observation with its coordinate and typed attributes."""
    rows = []
    for obs in observations:
        row = {"code": obs.code, "x": obs.x, "y": obs.y}
        row.update(obs.attributes.as_dict())
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["code", "x", "y", *KNOWN_ATTRIBUTES])
    return pd.DataFrame(rows)


class MeasurementIndex:
    """Lookup structure over one observation snapshot: by code and by owner."""

    def __init__(self, observations: Sequence[Observation]):
        self.observations: List[Observation] = list(observations)
        self._by_id: Dict[str, Observation] = {o.code: o for o in self.observations}
        self._by_owner: Dict[str, List[Observation]] = {}
        for obs in self.observations:
            owner = obs.attributes.user_n_code
            if owner is not None:
                self._by_owner.setdefault(str(owner), []).append(obs)

    def by_id(self, code: str) -> Optional[Observation]:
        return self._by_id.get(str(code))

    def by_owner(self, owner: str) -> List[Observation]:
        return list(self._by_owner.get(str(owner), []))

    def owners(self) -> List[str]:
        return list(self._by_owner)

    def recent(self, n: int = DEFAULT_RECENT_MEASUREMENTS, owner: Optional[str] = None) -> List[Observation]:
        """The `n` most recent observations (by date_photo, newest first), optionally for one owner."""
        selection = self.by_owner(owner) if owner is not None else self.observations
        stamped = [(pd.to_datetime(o.date_photo, utc=True, errors="coerce"), o) for o in selection]
        # Undated observations go last
        dated = sorted((s for s in stamped if not pd.isna(s[0])), key=lambda s: s[0], reverse=True)
        undated = [s for s in stamped if pd.isna(s[0])]
        return [o for _, o in dated + undated][:n]

    def summary_per_owner(self) -> Dict[str, int]:
        """Number of observations per owner."""
        return {owner: len(items) for owner, items in self._by_owner.items()}
