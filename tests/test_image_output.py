import numpy as np
import pytest
from PIL import Image

from deepzoom.core.perturbation import DwellField
from deepzoom.rendering.image_output import ImageExporter, RenderMetadata


@pytest.fixture
def metadata():
    return RenderMetadata(
        center=(-0.75, 0.1),
        zoom=1e-3,
        resolution=(8, 4),
        reference_point=(-0.7501, 0.1002),
        reference_generation=3,
        detail=64,
        validation_escape_radius=2.0,
        perturbation_escape_radius=256.0,
        palette='classic',
        backend='numpy',
        render_time_seconds=0.01,
    )


@pytest.fixture
def image():
    return np.linspace(0.0, 1.0, 8 * 4 * 3).reshape(4, 8, 3)


def test_metadata_defaults(metadata):
    assert metadata.timestamp
    assert metadata.software_version == "1.0.0"
    assert RenderMetadata.from_json(metadata.to_json()) == metadata


def test_png_embeds_metadata(tmp_path, image, metadata):
    exporter = ImageExporter()
    path = exporter.save_image(image, tmp_path / "out.png", metadata)
    with Image.open(path) as img:
        assert img.size == (8, 4)
    assert exporter.extract_metadata_from_image(path) == metadata


def test_jpeg_writes_companion_json(tmp_path, image, metadata):
    exporter = ImageExporter()
    path = exporter.save_image(image, tmp_path / "out.jpg", metadata, quality=80)
    assert path.with_suffix('.json').exists()
    assert exporter.extract_metadata_from_image(path) == metadata


def test_png_without_metadata(tmp_path, image):
    exporter = ImageExporter()
    path = exporter.save_image(image, tmp_path / "plain.png")
    assert exporter.extract_metadata_from_image(path) is None


def test_rejects_bad_input(tmp_path, image):
    exporter = ImageExporter()
    with pytest.raises(ValueError):
        exporter.save_image(image, tmp_path / "out.bmp")
    with pytest.raises(ValueError):
        exporter.save_image(np.zeros((4, 8)), tmp_path / "out.png")


def test_raw_data_round_trip(tmp_path, metadata):
    field = DwellField(np.array([[1.5, -1.0]]), np.array([[True, False]]),
                       np.array([[1, -1]], dtype=np.int32))
    exporter = ImageExporter()
    path = exporter.save_raw_data(field, tmp_path / "field", metadata)
    assert path.suffix == '.npz'

    loaded, loaded_metadata = exporter.load_raw_data(path)
    np.testing.assert_array_equal(loaded.dwell, field.dwell)
    np.testing.assert_array_equal(loaded.escaped, field.escaped)
    assert loaded_metadata == metadata
