"""
Configuration file handling and view bookmarks.

Configuration files are YAML or JSON (chosen by suffix) with two optional
sections: ``render`` holding RenderConfig fields and ``bookmarks`` mapping
names to ``{x, y, zoom, description}``.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, asdict, fields
import logging

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bookmark:
    """A named view location."""
    name: str
    x: float
    y: float
    zoom: float
    description: str = ""

    def __post_init__(self):
        if not self.zoom > 0:
            raise ValueError(f"Bookmark '{self.name}' has non-positive zoom {self.zoom}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        del data['name']
        return data


BUILTIN_BOOKMARKS = {
    bookmark.name: bookmark for bookmark in [
        Bookmark("home", -0.75, 0.0, 1.5, "Whole set"),
        Bookmark("seahorse-valley", -0.743643887037158704752191506114774,
                 0.131825904205311970493132056385139, 1e-9,
                 "Spirals between the main cardioid and the period-2 bulb"),
        Bookmark("elephant-valley", 0.2925, 0.0149, 5e-3,
                 "Elephant trunks near the cusp of the main cardioid"),
        Bookmark("period-3-minibrot", -1.7548776662466927, 0.0, 2e-2,
                 "Largest miniature copy on the real axis"),
    ]
}


class ConfigManager:
    """Loads, validates and writes configuration files."""

    def __init__(self):
        """Initialize config manager with built-in bookmarks."""
        self.bookmarks: Dict[str, Bookmark] = dict(BUILTIN_BOOKMARKS)

    @staticmethod
    def _is_yaml(path: Path) -> bool:
        return path.suffix.lower() in ('.yaml', '.yml')

    def load_config(self, config_path: Optional[Path] = None) -> Dict[str, Any]:
        """
        Load a configuration file.

        Args:
            config_path: YAML or JSON file; None returns an empty configuration

        Returns:
            Configuration dictionary
        """
        if config_path is None:
            return {}

        config_path = Path(config_path)
        text = config_path.read_text()

        if self._is_yaml(config_path):
            config_dict = yaml.safe_load(text) or {}
        elif config_path.suffix.lower() == '.json':
            config_dict = json.loads(text)
        else:
            raise ValueError(f"Unsupported config format '{config_path.suffix}'. "
                             f"Supported: .yaml, .yml, .json")

        if not isinstance(config_dict, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        errors = self.validate_config(config_dict)
        if errors:
            raise ValueError(f"Invalid config {config_path}: " + "; ".join(errors))

        self.load_bookmarks(config_dict)
        logger.info(f"Loaded configuration from {config_path}")
        return config_dict

    def save_config(self, config_dict: Dict[str, Any], config_path: Path) -> None:
        """Write a configuration dictionary as YAML or JSON."""
        config_path = Path(config_path)
        if self._is_yaml(config_path):
            config_path.write_text(yaml.safe_dump(config_dict, sort_keys=False))
        else:
            config_path.write_text(json.dumps(config_dict, indent=2))
        logger.info(f"Saved configuration to {config_path}")

    def validate_config(self, config_dict: Dict[str, Any]) -> List[str]:
        """
        Check a configuration dictionary.

        Returns:
            List of error messages (empty when valid)
        """
        from ..api import RenderConfig

        errors = []
        known = {f.name for f in fields(RenderConfig)}

        render = config_dict.get('render', {})
        if not isinstance(render, dict):
            errors.append("'render' must be a mapping")
        else:
            unknown = sorted(set(render) - known)
            if unknown:
                errors.append(f"Unknown render settings: {', '.join(unknown)}")
            else:
                try:
                    RenderConfig(**render).validate()
                except (TypeError, ValueError) as e:
                    errors.append(str(e))

        bookmarks = config_dict.get('bookmarks', {})
        if not isinstance(bookmarks, dict):
            errors.append("'bookmarks' must be a mapping")
        else:
            for name, entry in bookmarks.items():
                try:
                    Bookmark(name=name, **entry)
                except (TypeError, ValueError) as e:
                    errors.append(f"Bookmark '{name}': {e}")

        return errors

    def create_render_config(self, config_dict: Dict[str, Any]):
        """Build a RenderConfig from the 'render' section."""
        from ..api import RenderConfig

        config = RenderConfig(**config_dict.get('render', {}))
        config.validate()
        return config

    def load_bookmarks(self, config_dict: Dict[str, Any]) -> None:
        """Merge user bookmarks over the built-in ones."""
        for name, entry in config_dict.get('bookmarks', {}).items():
            self.bookmarks[name] = Bookmark(name=name, **entry)

    def get_bookmark(self, name: str) -> Bookmark:
        """Get bookmark by name."""
        if name not in self.bookmarks:
            available = ', '.join(self.bookmarks.keys())
            raise ValueError(f"Unknown bookmark '{name}'. Available: {available}")
        return self.bookmarks[name]

    def list_bookmarks(self) -> List[str]:
        """Get list of available bookmarks."""
        return list(self.bookmarks.keys())

    def export_config_template(self, output_path: Path) -> None:
        """Write a template configuration with default values."""
        from ..api import RenderConfig

        template = {
            'render': asdict(RenderConfig()),
            'bookmarks': {
                'my-location': Bookmark("my-location", -0.1011, 0.9563, 1e-2,
                                        "Example user bookmark").to_dict(),
            },
        }
        self.save_config(template, output_path)


def load_config_from_args(config_file: Optional[str] = None,
                          bookmark: Optional[str] = None) -> Tuple[Any, ConfigManager]:
    """
    Build the render configuration for a CLI invocation.

    Args:
        config_file: Optional configuration file path
        bookmark: Optional bookmark name whose location overrides the view

    Returns:
        Tuple of (RenderConfig, ConfigManager)
    """
    manager = ConfigManager()
    config_dict = manager.load_config(config_file)
    render_config = manager.create_render_config(config_dict)

    if bookmark:
        location = manager.get_bookmark(bookmark)
        render_config.center_x = location.x
        render_config.center_y = location.y
        render_config.zoom = location.zoom

    return render_config, manager
