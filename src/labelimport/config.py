"""
Import configuration loaded from JSON.

Example::

    {
        "URI": "http://emdata2.int.janelia.org:7000/api/node/653/labels/raw/0_1_2/18534_10786_32",
        "SizeX": 18534,
        "SizeY": 10786,
        "Thickness": 32,
        "BegZ": 10048,
        "EndZ": 17567,
        "Directories": [
            {
                "Path": "/groups/flyem/data/FIB-19/M10",
                "BegZ": 10058,
                "EndZ": 13182,
                "Template": "bodies-z%05d-18534x10786x32.gz"
            },
            {
                "Path": "/groups/flyem/data/FIB-19/LO",
                "BegZ": 13183,
                "EndZ": 17557,
                "Template": "bodies-z%05d-18534x10786x32.gz"
            }
        ]
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from labelimport.core.errors import ConfigurationError
from labelimport.core.geometry import SourceRange, VolumeExtent, validate_sources

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 32


def _as_int(data: Dict[str, Any], key: str) -> int:
    """Integer value of a key, rejecting fractional numbers and non-numbers."""
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    return int(value)


@dataclass
class ImportConfig:
    """Destination address, volume geometry and ordered source directories."""
    uri: str
    size_x: int
    size_y: int
    thickness: int
    beg_z: int
    end_z: int
    directories: List[SourceRange] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImportConfig':
        """
        Create a configuration from its JSON representation.

        Raises:
            ConfigurationError: If a required key is missing or has the wrong type
        """
        try:
            directories = [
                SourceRange(
                    path=str(d["Path"]),
                    template=str(d["Template"]),
                    beg_z=_as_int(d, "BegZ"),
                    end_z=_as_int(d, "EndZ")
                )
                for d in data.get("Directories", [])
            ]
            return cls(
                uri=str(data.get("URI", "")),
                size_x=_as_int(data, "SizeX"),
                size_y=_as_int(data, "SizeY"),
                thickness=_as_int(data, "Thickness"),
                beg_z=_as_int(data, "BegZ"),
                end_z=_as_int(data, "EndZ"),
                directories=directories
            )
        except ConfigurationError:
            raise
        except KeyError as e:
            raise ConfigurationError(f"Missing configuration key: {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Bad configuration value: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "URI": self.uri,
            "SizeX": self.size_x,
            "SizeY": self.size_y,
            "Thickness": self.thickness,
            "BegZ": self.beg_z,
            "EndZ": self.end_z,
            "Directories": [
                {"Path": d.path, "BegZ": d.beg_z, "EndZ": d.end_z, "Template": d.template}
                for d in self.directories
            ]
        }

    @property
    def extent(self) -> VolumeExtent:
        return VolumeExtent(
            size_x=self.size_x,
            size_y=self.size_y,
            thickness=self.thickness,
            beg_z=self.beg_z,
            end_z=self.end_z
        )

    def validate(self, block_size: Optional[int] = DEFAULT_BLOCK_SIZE) -> VolumeExtent:
        """
        Check geometry and source ordering before any processing starts.

        Args:
            block_size: Required slab thickness, or None to accept any

        Returns:
            The validated volume extent

        Raises:
            ConfigurationError: If the configuration cannot be imported
        """
        extent = self.extent
        if block_size is not None and self.thickness != block_size:
            raise ConfigurationError(
                f"Destination block size ({block_size}) must equal the thickness "
                f"of the import slabs ({self.thickness})"
            )
        validate_sources(self.directories)
        return extent


def load_config(path: str) -> ImportConfig:
    """
    Read an import configuration JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed configuration, not yet validated

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(Path(path), 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not open configuration JSON file: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Error reading configuration JSON file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a JSON object")

    config = ImportConfig.from_dict(data)
    logger.info(f"Loaded configuration with {len(config.directories)} directories from {path}")
    return config


__all__ = [
    'DEFAULT_BLOCK_SIZE',
    'ImportConfig',
    'load_config'
]
