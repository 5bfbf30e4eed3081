import pytest
from click.testing import CliRunner

from deepzoom.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert "deepzoom v1.0.0" in result.output


def test_list_palettes(runner):
    result = runner.invoke(main, ['list-palettes'])
    assert result.exit_code == 0
    assert "classic" in result.output


def test_list_bookmarks(runner):
    result = runner.invoke(main, ['list-bookmarks'])
    assert result.exit_code == 0
    assert "seahorse-valley" in result.output


def test_orbit_reports_escape(runner):
    result = runner.invoke(main, ['orbit', '2', '2'])
    assert result.exit_code == 0
    assert "escapes at iteration 0" in result.output
    assert "Perturbation: dwell" in result.output


def test_orbit_bounded_point(runner):
    result = runner.invoke(main, ['orbit', '0', '0', '--seed', '1', '--show-orbit'])
    assert result.exit_code == 0
    assert "stays bounded for 64 iterations" in result.output
    assert "valid=True" in result.output
    assert "Perturbation: in set, color (0, 0, 0)" in result.output
    assert "Z[63]" in result.output


def test_render_writes_image(runner, tmp_path):
    output = tmp_path / "view.png"
    result = runner.invoke(main, ['render', str(output), '--center=-0.75,0.1', '--zoom', '0.5',
                                  '-w', '24', '-h', '16', '--backend', 'numpy', '--seed', '3'])
    assert result.exit_code == 0, result.output
    assert output.exists()
    assert "Saved:" in result.output


def test_render_from_bookmark_with_raw_data(runner, tmp_path):
    output = tmp_path / "bookmark.png"
    result = runner.invoke(main, ['render', str(output), '-b', 'elephant-valley',
                                  '-w', '16', '-h', '16', '--backend', 'numpy', '--raw'])
    assert result.exit_code == 0, result.output
    assert output.with_suffix('.npz').exists()


def test_render_unsupported_format_fails(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / "view.bmp"),
                                  '-w', '8', '-h', '8', '--backend', 'numpy'])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_render_bad_center_fails(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / "view.png"), '--center', 'nope'])
    assert result.exit_code == 1


def test_config_template_and_validation(runner, tmp_path):
    path = tmp_path / "deepzoom.yaml"
    result = runner.invoke(main, ['init-config', '-o', str(path)])
    assert result.exit_code == 0
    assert path.exists()

    result = runner.invoke(main, ['validate-config', str(path)])
    assert result.exit_code == 0
    assert "valid" in result.output

    result = runner.invoke(main, ['--config', str(path), 'list-bookmarks'])
    assert "my-location" in result.output


def test_validate_config_reports_errors(runner, tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("render:\n  zoom: -2\n")
    result = runner.invoke(main, ['validate-config', str(path)])
    assert result.exit_code == 1
