"""
Data model for global tone and color adjustments.

Every knob is range-bounded. Values are clamped on the way in so an
AdjustmentModel can never hold an out-of-range value.
"""

from dataclasses import dataclass, asdict, fields, replace
from typing import Dict, Any, Tuple, Mapping
import logging
import math

from photoedit.errors import InvalidAdjustment

logger = logging.getLogger(__name__)


# Field name -> (min, max, default)
ADJUSTMENT_RANGES: Dict[str, Tuple[float, float, float]] = {
    # Basic
    'brightness': (-100.0, 100.0, 0.0),
    'contrast': (-100.0, 100.0, 0.0),
    'saturation': (-100.0, 100.0, 0.0),
    'vibrance': (-100.0, 100.0, 0.0),
    # Tonal
    'highlights': (-100.0, 100.0, 0.0),
    'shadows': (-100.0, 100.0, 0.0),
    'exposure': (-100.0, 100.0, 0.0),
    'gamma': (0.2, 5.0, 1.0),
    # Color
    'temperature': (-100.0, 100.0, 0.0),
    'tint': (-100.0, 100.0, 0.0),
    # Detail
    'sharpen': (0.0, 100.0, 0.0),
    'clarity': (-100.0, 100.0, 0.0),
    # RGB
    'red_channel': (-100.0, 100.0, 0.0),
    'green_channel': (-100.0, 100.0, 0.0),
    'blue_channel': (-100.0, 100.0, 0.0),
}

# Names used by external collaborators (JSON payloads, presets authored elsewhere)
_ALIASES = {
    'redChannel': 'red_channel',
    'greenChannel': 'green_channel',
    'blueChannel': 'blue_channel',
}


def canonical_name(key: str) -> str:
    """Map an adjustment name to its field name, raising on unknown names."""
    name = _ALIASES.get(key, key)
    if name not in ADJUSTMENT_RANGES:
        raise InvalidAdjustment(f"Unknown adjustment '{key}'")
    return name


def clamp_adjustment(name: str, value: Any) -> float:
    """Clamp a value into the declared range of an adjustment."""
    min_val, max_val, default = ADJUSTMENT_RANGES[name]
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidAdjustment(f"Adjustment '{name}' value {value!r} is not a number")

    if math.isnan(number):
        return default

    clamped = min(max_val, max(min_val, number))
    if clamped != number:
        logger.debug(f"Clamped {name}={number} to [{min_val}, {max_val}]")
    return clamped


@dataclass(frozen=True)
class AdjustmentModel:
    """Global adjustment values applied by the pixel pipeline."""
    # Basic
    brightness: float = 0.0      # -100 to 100
    contrast: float = 0.0        # -100 to 100
    saturation: float = 0.0      # -100 to 100
    vibrance: float = 0.0        # -100 to 100
    # Tonal
    highlights: float = 0.0      # -100 to 100
    shadows: float = 0.0         # -100 to 100
    exposure: float = 0.0        # -100 to 100
    gamma: float = 1.0           # 0.2 to 5 (1 = neutral)
    # Color
    temperature: float = 0.0     # -100 to 100 (cool/warm)
    tint: float = 0.0            # -100 to 100 (green/magenta)
    # Detail
    sharpen: float = 0.0         # 0 to 100
    clarity: float = 0.0         # -100 to 100
    # RGB
    red_channel: float = 0.0     # -100 to 100
    green_channel: float = 0.0   # -100 to 100
    blue_channel: float = 0.0    # -100 to 100

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, clamp_adjustment(f.name, getattr(self, f.name)))

    def with_value(self, key: str, value: float) -> 'AdjustmentModel':
        """Return a copy with one adjustment changed (clamped)."""
        return replace(self, **{canonical_name(key): value})

    def with_values(self, values: Mapping[str, float]) -> 'AdjustmentModel':
        """Return a copy with several adjustments changed (clamped)."""
        return replace(self, **{canonical_name(k): v for k, v in values.items()})

    def is_default(self) -> bool:
        return self == DEFAULT_ADJUSTMENTS

    def changed_fields(self) -> Dict[str, float]:
        """Fields whose value differs from the default."""
        return {
            name: value for name, value in self.to_dict().items()
            if value != ADJUSTMENT_RANGES[name][2]
        }

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AdjustmentModel':
        """Create from a dict; accepts snake_case and camelCase channel names."""
        return cls(**{canonical_name(k): v for k, v in data.items()})


DEFAULT_ADJUSTMENTS = AdjustmentModel()


def default_value(name: str) -> float:
    return ADJUSTMENT_RANGES[canonical_name(name)][2]
