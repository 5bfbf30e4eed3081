"""
Periodic palette coloring for continuous dwell values.

Escaping points are colored per channel with sin(dwell * frequency + phase)
* 0.5 + 0.5, giving a palette that repeats over dwell. Points in the set get
a fixed inside color.
"""

import math
import numpy as np
from typing import Dict, List, Tuple, Optional
from dataclasses import dataclass
import logging

from ..core.perturbation import DwellField, DwellResult

logger = logging.getLogger(__name__)

# Dwell multiplier inside the sine
DWELL_FREQUENCY = 0.1


@dataclass
class ColorRGB:
    """RGB color representation."""
    r: float
    g: float
    b: float

    def __post_init__(self):
        """Validate RGB values."""
        for component in [self.r, self.g, self.b]:
            if not 0 <= component <= 1:
                raise ValueError("RGB components must be between 0 and 1")

    def to_tuple(self) -> Tuple[float, float, float]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)

    def to_uint8_tuple(self) -> Tuple[int, int, int]:
        """Convert to 8-bit RGB tuple."""
        return (int(round(self.r * 255)), int(round(self.g * 255)), int(round(self.b * 255)))


BLACK = ColorRGB(0.0, 0.0, 0.0)


class PeriodicPalette:
    """Sine palette with a fixed phase per channel."""

    def __init__(self, phases: Tuple[float, float, float], name: str = "Custom",
                 frequency: float = DWELL_FREQUENCY):
        """
        Initialize periodic palette.

        Args:
            phases: Phase offset for the red, green and blue channels
            name: Human-readable name for the palette
            frequency: Dwell multiplier inside the sine
        """
        if len(phases) != 3:
            raise ValueError(f"Expected three channel phases, got {len(phases)}")
        self.phases = tuple(float(p) for p in phases)
        self.name = name
        self.frequency = frequency

    def color(self, dwell: float) -> ColorRGB:
        """Color for a single dwell value."""
        return ColorRGB(*(math.sin(dwell * self.frequency + phase) * 0.5 + 0.5
                          for phase in self.phases))

    def apply(self, dwell: np.ndarray) -> np.ndarray:
        """
        Color an array of dwell values.

        Args:
            dwell: Dwell array of any shape

        Returns:
            Float array with a trailing RGB axis, values 0-1
        """
        phases = np.asarray(self.phases)
        return np.sin(dwell[..., np.newaxis] * self.frequency + phases) * 0.5 + 0.5


class ColoringEngine:
    """Maps dwell results to colors using named palettes."""

    def __init__(self, inside_color: Optional[ColorRGB] = None):
        """
        Initialize coloring engine with built-in palettes.

        Args:
            inside_color: Color for points in the set (black by default)
        """
        self.inside_color = inside_color or BLACK
        self.palettes = self._create_builtin_palettes()

    def _create_builtin_palettes(self) -> Dict[str, PeriodicPalette]:
        """Create built-in periodic palettes."""
        third = 2 * math.pi / 3
        return {
            'classic': PeriodicPalette((0.0, third, 2 * third), name="Classic"),
            'ember': PeriodicPalette((0.0, 0.6, 1.2), name="Ember"),
            'ocean': PeriodicPalette((3.5, 2.5, 1.5), name="Ocean"),
            'mono': PeriodicPalette((0.0, 0.0, 0.0), name="Monochrome"),
        }

    def add_palette(self, name: str, palette: PeriodicPalette) -> None:
        """Add a custom color palette."""
        self.palettes[name] = palette
        logger.info(f"Added color palette: {name}")

    def get_palette(self, name: str) -> PeriodicPalette:
        """Get color palette by name."""
        if name not in self.palettes:
            available = ', '.join(self.palettes.keys())
            raise ValueError(f"Unknown color palette '{name}'. Available: {available}")
        return self.palettes[name]

    def list_palettes(self) -> List[str]:
        """Get list of available color palettes."""
        return list(self.palettes.keys())

    def color_for_dwell(self, result: DwellResult, palette: str = 'classic') -> ColorRGB:
        """Color for a single evaluated point."""
        if result.in_set:
            return self.inside_color
        return self.get_palette(palette).color(result.dwell)

    def render_color_image(self, field: DwellField, palette: str = 'classic') -> np.ndarray:
        """
        Render colored image from a dwell field.

        Args:
            field: Perturbation results for every pixel
            palette: Color palette name

        Returns:
            RGB image array (height, width, 3) with values 0-1
        """
        rgb_image = self.get_palette(palette).apply(field.dwell)
        rgb_image[~field.escaped] = self.inside_color.to_tuple()
        return rgb_image
