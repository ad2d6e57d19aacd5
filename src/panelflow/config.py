"""Configuration dataclasses for PanelFlow.

Detection tunables live in a single dataclass so that presets, YAML files
and the CLI all produce the same object, validated in one place.
"""

from dataclasses import dataclass, fields
from typing import Dict, Any, Optional
import copy
import numbers
import logging
import math
import os

import yaml

from .errors import InvalidParameterError

log = logging.getLogger("panelflow.config")

# Page-border rejection must stay just under a full page span
BORDER_RATIO_MIN = 0.95
BORDER_RATIO_MAX = 0.99

PRESET_ENV_VAR = "PANELFLOW_PRESET"


@dataclass
class DetectionParameters:
    """Tunables for the panel detection pipeline.

    Pixel-valued parameters are in page pixels of the image handed to the
    detector; no DPI scaling is applied.
    """

    # Kept for API compatibility with stored parameter sets; the adaptive
    # stage computes its cutoff locally and does not read it.
    threshold: float = 127

    # Morphology parameters
    dilation_kernel_size: int = 5  # Square kernel side; even values round up to odd

    # Candidate filter parameters
    min_contour_area: float = 1000  # Contours enclosing less area are noise/text specks
    border_ratio: float = 0.95      # Width or height fraction at which a box is the page border

    # Adaptive threshold parameters
    adaptive_block_size: int = 11   # Neighbourhood size (must be odd)
    adaptive_c: float = 5           # Constant subtracted from the local mean

    # Overlap merging
    merge_overlaps: bool = False    # Union boxes that overlap after padding
    merge_padding: int = 10         # Margin added to one box before the intersection test

    @property
    def effective_kernel_size(self) -> int:
        """Kernel side actually used: even sizes are rounded up to the next odd value."""
        k = int(self.dilation_kernel_size)
        return k if k % 2 == 1 else k + 1

    def _check_real(self, name: str) -> float:
        value = getattr(self, name)
        if (not isinstance(value, numbers.Real) or isinstance(value, bool)
                or not math.isfinite(value)):
            raise InvalidParameterError(f"{name} must be a finite number, got {value!r}")
        return value

    def validate(self) -> "DetectionParameters":
        """Raise InvalidParameterError on any out-of-range tunable.

        Returns self so calls can be chained.
        """
        for name in ("threshold", "min_contour_area", "border_ratio", "adaptive_c", "merge_padding"):
            self._check_real(name)
        k = self.dilation_kernel_size
        if not isinstance(k, numbers.Integral) or isinstance(k, bool):
            raise InvalidParameterError(
                f"dilation_kernel_size must be an integer, got {self.dilation_kernel_size!r}"
            )
        if self.dilation_kernel_size < 1:
            raise InvalidParameterError(
                f"dilation_kernel_size must be >= 1, got {self.dilation_kernel_size}"
            )
        if self.min_contour_area <= 0:
            raise InvalidParameterError(
                f"min_contour_area must be > 0, got {self.min_contour_area}"
            )
        if not 0 <= self.threshold <= 255:
            raise InvalidParameterError(f"threshold must be in [0, 255], got {self.threshold}")
        block = self.adaptive_block_size
        if not isinstance(block, numbers.Integral) or block <= 1 or block % 2 == 0:
            raise InvalidParameterError(
                f"adaptive_block_size must be an odd integer > 1, got {block!r}"
            )
        if not BORDER_RATIO_MIN <= self.border_ratio <= BORDER_RATIO_MAX:
            raise InvalidParameterError(
                f"border_ratio must be in [{BORDER_RATIO_MIN}, {BORDER_RATIO_MAX}], "
                f"got {self.border_ratio}"
            )
        if self.merge_padding < 0:
            raise InvalidParameterError(f"merge_padding must be >= 0, got {self.merge_padding}")
        return self

    def copy(self) -> "DetectionParameters":
        """Return a deep copy of this configuration."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "threshold": self.threshold,
            "dilation_kernel_size": self.dilation_kernel_size,
            "min_contour_area": self.min_contour_area,
            "border_ratio": self.border_ratio,
            "adaptive_block_size": self.adaptive_block_size,
            "adaptive_c": self.adaptive_c,
            "merge_overlaps": self.merge_overlaps,
            "merge_padding": self.merge_padding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionParameters":
        """Create from dictionary, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


# Two observed tunings: a precise one without merging, and one that fuses
# text and borders then merges the fragments
PRESETS: Dict[str, DetectionParameters] = {
    "default": DetectionParameters(),
    "fused": DetectionParameters(
        dilation_kernel_size=15,
        min_contour_area=5000,
        border_ratio=0.98,
        merge_overlaps=True,
        merge_padding=15,
    ),
}


def get_preset(name: str) -> DetectionParameters:
    """Return a copy of a named preset."""
    try:
        return PRESETS[name].copy()
    except KeyError:
        raise InvalidParameterError(
            f"Unknown preset {name!r}; choose from {sorted(PRESETS)}"
        ) from None


def load_parameters(path: str, base: Optional[DetectionParameters] = None) -> DetectionParameters:
    """Load detection parameters from a YAML file.

    The file is a mapping of parameter names to values. An optional
    ``preset`` key selects the starting point; other keys override it.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise InvalidParameterError(f"{path}: invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise InvalidParameterError(f"{path}: expected a mapping, got {type(data).__name__}")

    if "preset" in data:
        params = get_preset(str(data.pop("preset")))
    else:
        params = base.copy() if base is not None else DetectionParameters()

    merged = params.to_dict()
    unknown = sorted(set(data) - set(merged))
    if unknown:
        log.warning("Ignoring unknown parameters in %s: %s", path, unknown)
    merged.update({k: v for k, v in data.items() if k in merged})
    log.info("Loaded detection parameters from %s", os.path.abspath(path))
    return DetectionParameters.from_dict(merged).validate()
