"""
Image export for rendered deep-zoom frames.

This module writes RGB frames to PNG (with embedded JSON metadata) or JPEG
(with a companion JSON file), and raw dwell fields to NumPy archives.
"""

import numpy as np
from typing import Dict, Any, Optional, Tuple
from pathlib import Path
from dataclasses import dataclass, asdict
import json
import logging
from datetime import datetime

from PIL import Image, PngImagePlugin

from ..core.perturbation import DwellField

logger = logging.getLogger(__name__)

METADATA_KEY = "DeepZoomMetadata"


@dataclass
class RenderMetadata:
    """Metadata for rendered frames."""

    # View parameters
    center: Tuple[float, float]
    zoom: float
    resolution: Tuple[int, int]  # width, height

    # Reference orbit
    reference_point: Tuple[float, float]
    reference_generation: int
    detail: int
    validation_escape_radius: float
    perturbation_escape_radius: float

    # Rendering parameters
    palette: str
    backend: str
    render_time_seconds: float

    # Generation info
    timestamp: str = ""
    software_version: str = ""

    def __post_init__(self):
        """Set default timestamp and version if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()
        if not self.software_version:
            from .. import __version__
            self.software_version = __version__

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        data = dict(data)
        for key in ('center', 'resolution', 'reference_point'):
            if key in data:
                data[key] = tuple(data[key])
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


class ImageExporter:
    """Image export with metadata support."""

    def __init__(self):
        """Initialize image exporter."""
        self.supported_formats = {
            '.png': self._save_png,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
        }

    def save_image(self, image_array: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata] = None,
                   quality: int = 95) -> Path:
        """
        Save RGB image array to file with metadata.

        Args:
            image_array: RGB image array (height, width, 3) with values 0-1
            filepath: Output file path
            metadata: Render metadata to embed
            quality: JPEG quality (1-100)

        Returns:
            Path the image was written to
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        pil_image = Image.fromarray(self._prepare_image_array(image_array))
        self.supported_formats[suffix](pil_image, filepath, metadata, quality)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]})")
        return filepath

    def _prepare_image_array(self, image_array: np.ndarray) -> np.ndarray:
        """Validate an RGB array and convert it to 8-bit."""
        if image_array.ndim != 3 or image_array.shape[2] != 3:
            raise ValueError(f"Expected RGB image array (H, W, 3), got {image_array.shape}")

        if image_array.dtype == np.uint8:
            return image_array
        if np.issubdtype(image_array.dtype, np.floating):
            return (np.clip(image_array, 0.0, 1.0) * 255).round().astype(np.uint8)
        return np.clip(image_array, 0, 255).astype(np.uint8)

    def _save_png(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as PNG with metadata text chunks."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Title", f"Mandelbrot at ({metadata.center[0]}, {metadata.center[1]})")
            pnginfo.add_text("Software", f"deepzoom v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text(METADATA_KEY, metadata.to_json())

        pil_image.save(filepath, "PNG", pnginfo=pnginfo)

    def _save_jpeg(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as JPEG; metadata goes to a companion JSON file."""
        pil_image.save(filepath, "JPEG", quality=quality, optimize=True)

        if metadata:
            json_path = filepath.with_suffix('.json')
            json_path.write_text(metadata.to_json())
            logger.info(f"Saved metadata: {json_path}")

    def save_raw_data(self, field: DwellField, filepath: Path,
                      metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Save a dwell field as a compressed NumPy archive.

        Args:
            field: Dwell field to save
            filepath: Output file path (.npz)
            metadata: Metadata stored alongside as JSON

        Returns:
            Path of the archive
        """
        filepath = Path(filepath).with_suffix('.npz')
        np.savez_compressed(filepath, dwell=field.dwell, escaped=field.escaped,
                            iterations=field.iterations)

        if metadata:
            filepath.with_suffix('.json').write_text(metadata.to_json())

        logger.info(f"Saved raw data: {filepath}")
        return filepath

    def load_raw_data(self, filepath: Path) -> Tuple[DwellField, Optional[RenderMetadata]]:
        """
        Load a dwell field and its metadata.

        Args:
            filepath: Input file path (.npz)

        Returns:
            Tuple of (field, metadata)
        """
        filepath = Path(filepath)
        with np.load(filepath) as data:
            field = DwellField(data['dwell'], data['escaped'], data['iterations'])

        metadata = None
        metadata_path = filepath.with_suffix('.json')
        if metadata_path.exists():
            metadata = RenderMetadata.from_json(metadata_path.read_text())

        return field, metadata

    def extract_metadata_from_image(self, filepath: Path) -> Optional[RenderMetadata]:
        """
        Extract render metadata from a saved image.

        Args:
            filepath: Path to image file

        Returns:
            Extracted metadata or None
        """
        filepath = Path(filepath)

        with Image.open(filepath) as img:
            text = getattr(img, 'text', {})
            if METADATA_KEY in text:
                return RenderMetadata.from_json(text[METADATA_KEY])

        if filepath.suffix.lower() in ['.jpg', '.jpeg']:
            json_path = filepath.with_suffix('.json')
            if json_path.exists():
                return RenderMetadata.from_json(json_path.read_text())

        return None
