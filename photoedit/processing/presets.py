"""
Preset catalog and blending for PhotoEdit.

Thirty fixed "looks" in six categories. A preset is a partial set of
adjustment values; it is blended in at an intensity and then any slider the
user moved by hand takes precedence over the preset-derived value.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional
import logging

from .adjustments import (
    ADJUSTMENT_RANGES, AdjustmentModel, DEFAULT_ADJUSTMENTS, canonical_name
)

logger = logging.getLogger(__name__)


class PresetCategory(Enum):
    """Preset groupings, in display order."""
    VIVID = "Vivid"
    WARM = "Warm"
    COOL = "Cool"
    BW = "B&W"
    CINEMATIC = "Cinematic"
    MATTE = "Matte"


@dataclass(frozen=True)
class Preset:
    """An immutable catalog entry."""
    id: str
    name: str
    category: PresetCategory
    overrides: Mapping[str, float] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        normalized = {canonical_name(k): float(v) for k, v in dict(self.overrides).items()}
        object.__setattr__(self, 'overrides', MappingProxyType(normalized))


def _preset(preset_id: str, name: str, category: PresetCategory, **overrides) -> Preset:
    return Preset(id=preset_id, name=name, category=category, overrides=overrides)


PRESETS: tuple = (
    # Vivid
    _preset('vivid-punch', 'Punch', PresetCategory.VIVID,
            contrast=25, saturation=30, vibrance=20, clarity=15),
    _preset('vivid-pop', 'Pop', PresetCategory.VIVID,
            brightness=5, contrast=20, saturation=40, vibrance=25, highlights=10),
    _preset('vivid-vibrant', 'Vibrant', PresetCategory.VIVID,
            saturation=50, vibrance=35, contrast=15, clarity=10),
    _preset('vivid-saturate', 'Saturate', PresetCategory.VIVID,
            saturation=60, vibrance=20, contrast=10),
    _preset('vivid-bold', 'Bold', PresetCategory.VIVID,
            contrast=35, saturation=25, shadows=-15, highlights=15, clarity=20),

    # Warm
    _preset('warm-golden', 'Golden', PresetCategory.WARM,
            temperature=40, tint=10, saturation=15, highlights=10, shadows=5),
    _preset('warm-sunset', 'Sunset', PresetCategory.WARM,
            temperature=55, tint=20, saturation=20, contrast=10, red_channel=15),
    _preset('warm-amber', 'Amber', PresetCategory.WARM,
            temperature=45, tint=5, saturation=10, contrast=5, red_channel=10),
    _preset('warm-toast', 'Toast', PresetCategory.WARM,
            temperature=30, contrast=15, saturation=-10, shadows=10, red_channel=8),
    _preset('warm-honey', 'Honey', PresetCategory.WARM,
            temperature=35, tint=15, saturation=25, brightness=5, vibrance=15),

    # Cool
    _preset('cool-arctic', 'Arctic', PresetCategory.COOL,
            temperature=-40, tint=-10, saturation=10, contrast=15, blue_channel=15),
    _preset('cool-ocean', 'Ocean', PresetCategory.COOL,
            temperature=-35, tint=5, saturation=20, vibrance=15, blue_channel=20, green_channel=5),
    _preset('cool-frost', 'Frost', PresetCategory.COOL,
            temperature=-50, brightness=10, contrast=10, saturation=-15, blue_channel=25),
    _preset('cool-ice', 'Ice', PresetCategory.COOL,
            temperature=-45, contrast=20, highlights=20, saturation=-20, blue_channel=20),
    _preset('cool-steel', 'Steel', PresetCategory.COOL,
            temperature=-25, saturation=-30, contrast=25, clarity=15, blue_channel=10),

    # B&W
    _preset('bw-classic', 'Classic', PresetCategory.BW,
            saturation=-100, contrast=15, brightness=5),
    _preset('bw-high-contrast', 'High Contrast', PresetCategory.BW,
            saturation=-100, contrast=50, shadows=-20, highlights=20),
    _preset('bw-film-noir', 'Film Noir', PresetCategory.BW,
            saturation=-100, contrast=40, shadows=-30, highlights=10, clarity=20),
    _preset('bw-silvertone', 'Silvertone', PresetCategory.BW,
            saturation=-100, contrast=10, brightness=10, highlights=15, shadows=15),
    _preset('bw-dramatic', 'Dramatic', PresetCategory.BW,
            saturation=-100, contrast=60, clarity=30, shadows=-25, highlights=25),

    # Cinematic
    _preset('cine-teal-orange', 'Teal & Orange', PresetCategory.CINEMATIC,
            temperature=20, tint=-15, saturation=15, contrast=20, shadows=-10,
            blue_channel=15, red_channel=10),
    _preset('cine-blockbuster', 'Blockbuster', PresetCategory.CINEMATIC,
            contrast=30, saturation=-10, temperature=10, shadows=-20, highlights=-10, clarity=15),
    _preset('cine-vintage-film', 'Vintage Film', PresetCategory.CINEMATIC,
            temperature=15, saturation=-20, contrast=20, red_channel=10,
            green_channel=-5, blue_channel=-10, shadows=15),
    _preset('cine-desaturated', 'Desaturated', PresetCategory.CINEMATIC,
            saturation=-40, contrast=25, clarity=10, temperature=5),
    _preset('cine-moody', 'Moody', PresetCategory.CINEMATIC,
            contrast=20, saturation=-15, shadows=-25, highlights=-15, temperature=-10,
            clarity=15, blue_channel=10),

    # Matte
    _preset('matte-faded', 'Faded', PresetCategory.MATTE,
            contrast=-15, shadows=30, highlights=-10, saturation=-15),
    _preset('matte-haze', 'Haze', PresetCategory.MATTE,
            contrast=-20, brightness=10, shadows=40, saturation=-20, clarity=-10),
    _preset('matte-soft', 'Soft', PresetCategory.MATTE,
            contrast=-10, shadows=25, highlights=-5, saturation=-10, clarity=-15),
    _preset('matte-dusty', 'Dusty', PresetCategory.MATTE,
            contrast=-15, shadows=35, saturation=-25, temperature=10, red_channel=5),
    _preset('matte-cream', 'Cream', PresetCategory.MATTE,
            contrast=-10, shadows=30, temperature=20, saturation=-15, highlights=5, brightness=5),
)

_PRESETS_BY_ID: Mapping[str, Preset] = MappingProxyType({p.id: p for p in PRESETS})


def get_preset_by_id(preset_id: str) -> Optional[Preset]:
    return _PRESETS_BY_ID.get(preset_id)


def get_presets_by_category(category: PresetCategory) -> List[Preset]:
    return [p for p in PRESETS if p.category == category]


def get_presets_grouped_by_category() -> Dict[PresetCategory, List[Preset]]:
    return {category: get_presets_by_category(category) for category in PresetCategory}


def clamp_intensity(intensity: float) -> float:
    return min(100.0, max(0.0, float(intensity)))


def blend_with_preset(base: AdjustmentModel, overrides: Mapping[str, float],
                      intensity: float) -> AdjustmentModel:
    """
    Blend preset values into an adjustment model.

    Each key present in the preset is interpolated from its default towards
    the preset value by intensity/100. Keys the preset does not mention keep
    the value from ``base``.

    Args:
        base: Model supplying the values for keys absent from the preset
        overrides: Partial adjustment values from a preset
        intensity: 0-100

    Returns:
        New AdjustmentModel
    """
    factor = clamp_intensity(intensity) / 100.0
    blended = {}
    for key, preset_value in overrides.items():
        name = canonical_name(key)
        default = ADJUSTMENT_RANGES[name][2]
        blended[name] = default + (preset_value - default) * factor
    return base.with_values(blended)


@dataclass(frozen=True)
class PresetLayer:
    """Adjustments derived from a preset at a given intensity."""
    preset_id: Optional[str] = None
    intensity: float = 100.0
    adjustments: AdjustmentModel = DEFAULT_ADJUSTMENTS

    @classmethod
    def from_preset(cls, preset: Optional[Preset], intensity: float) -> 'PresetLayer':
        if preset is None:
            return cls()
        intensity = clamp_intensity(intensity)
        return cls(
            preset_id=preset.id,
            intensity=intensity,
            adjustments=blend_with_preset(DEFAULT_ADJUSTMENTS, preset.overrides, intensity),
        )


@dataclass(frozen=True)
class UserDelta:
    """Manual slider values that differ from their defaults."""
    values: Mapping[str, float] = field(default_factory=dict, hash=False)

    @classmethod
    def from_model(cls, manual: AdjustmentModel) -> 'UserDelta':
        return cls(values=MappingProxyType(manual.changed_fields()))


def merge_layers(preset_layer: PresetLayer, user_delta: UserDelta) -> AdjustmentModel:
    """Manual edits win over preset-derived values, key by key."""
    return preset_layer.adjustments.with_values(user_delta.values)


def resolve_effective_adjustments(manual: AdjustmentModel,
                                  preset: Optional[Preset] = None,
                                  intensity: float = 100.0) -> AdjustmentModel:
    """
    Compute the adjustments the pipeline should apply.

    Args:
        manual: The user's current slider values
        preset: Selected preset, if any
        intensity: Preset intensity 0-100

    Returns:
        Preset blended at intensity, with manual edits layered on top
    """
    if preset is None:
        return manual
    return merge_layers(PresetLayer.from_preset(preset, intensity), UserDelta.from_model(manual))
