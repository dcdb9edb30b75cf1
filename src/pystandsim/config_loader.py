"""
Configuration loader for pystandsim.
Provides unified access to YAML, TOML, and JSON configuration files.

Bundled files (``cfg/`` inside the package):
- species_groups.yaml - allometric coefficients by species group
- biomass_corrections.json - regional Jenkins-to-CRM biomass multipliers
- stumpage_prices.json - stumpage prices by species group and product
- prescriptions.yaml - silvicultural prescription catalog
- benchmarks.yaml - published yield-table benchmark stands

Files are parsed once per loader and cached.
"""
import json
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

from .exceptions import (
    ConfigurationError,
    FileNotFoundError as StandSimFileNotFoundError,
    InvalidDataError,
)

__all__ = [
    'ConfigLoader',
    'get_config_loader',
    'load_coefficient_file',
    'DEFAULT_CFG_DIR',
]

DEFAULT_CFG_DIR = Path(__file__).parent / 'cfg'


class ConfigLoader:
    """Loads and caches configuration files from a cfg/ directory.

    Attributes:
        cfg_dir: Path to the configuration directory
    """

    def __init__(self, cfg_dir: Optional[Path] = None):
        """Initialize the configuration loader.

        Args:
            cfg_dir: Path to the configuration directory. Defaults to the
                package's bundled cfg/ directory.
        """
        self.cfg_dir = Path(cfg_dir) if cfg_dir is not None else DEFAULT_CFG_DIR
        self._coefficient_cache: Dict[str, Dict[str, Any]] = {}

    def _load_config_file(self, file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML, TOML or JSON file.

        Args:
            file_path: Path to the configuration file

        Returns:
            Dictionary containing configuration data

        Raises:
            FileNotFoundError: If file doesn't exist (package exception)
            ConfigurationError: If the file format is not supported
            InvalidDataError: If parsing fails or the file is empty
        """
        if not file_path.exists():
            raise StandSimFileNotFoundError(str(file_path), "configuration file")

        suffix = file_path.suffix.lower()

        try:
            if suffix in ['.yaml', '.yml']:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f)
            elif suffix == '.toml':
                with open(file_path, 'rb') as f:
                    data = tomllib.load(f)
            elif suffix == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported configuration file format: {suffix}. "
                    f"Supported formats: .yaml, .yml, .toml, .json"
                )
        except yaml.YAMLError as e:
            raise InvalidDataError("YAML configuration", f"parsing error: {e}") from e
        except json.JSONDecodeError as e:
            raise InvalidDataError("JSON configuration", f"parsing error: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise InvalidDataError("TOML configuration", f"parsing error: {e}") from e

        if data is None:
            raise InvalidDataError(f"{suffix} file {file_path.name}",
                                   "file is empty or contains only comments")
        return data

    def load_coefficient_file(self, filename: str) -> Dict[str, Any]:
        """Load a configuration file by name, with caching.

        Args:
            filename: File name relative to cfg_dir (e.g. 'species_groups.yaml')

        Returns:
            Dictionary containing the file data
        """
        if filename not in self._coefficient_cache:
            self._coefficient_cache[filename] = self._load_config_file(self.cfg_dir / filename)
        return self._coefficient_cache[filename]

    def load_file(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Load a host-supplied configuration file (not cached).

        Args:
            file_path: Absolute or relative path to a YAML/TOML/JSON file
        """
        return self._load_config_file(Path(file_path))

    def clear_coefficient_cache(self) -> None:
        """Clear the file cache.

        Useful for testing or when configuration files may have changed.
        """
        self._coefficient_cache.clear()


# Shared loader for the bundled cfg/ directory
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the shared configuration loader for the bundled cfg/ directory."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_coefficient_file(filename: str) -> Dict[str, Any]:
    """Convenience function to load a bundled configuration file with caching.

    Args:
        filename: Name of the file in cfg/ (e.g. 'stumpage_prices.json')

    Returns:
        Dictionary containing the file data
    """
    return get_config_loader().load_coefficient_file(filename)
