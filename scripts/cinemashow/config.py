"""
Configuration management system for the show pipeline.
Supports TOML and JSON configuration files with validation.
"""

import os
import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional, Any, Tuple, Union

import toml

# Handle tomllib import for different Python versions
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11 with tomli package

from .utils.image import RESAMPLE_METHODS


ENV_PREFIX = "CINEMASHOW_"


@dataclass
class PipelineConfig:
    """Main configuration class for the show pipeline."""

    # Grid settings
    primary_axis: str = "x"
    blocks: int = 10

    # Show settings
    frame_time: int = 4
    frame_count: Optional[int] = None

    # Archive settings
    base_archive: str = "cinemashow-0.2.jar"
    output_name: str = "cinemashow.done.jar"
    namespace: str = "cinemashow"
    compression_level: int = 6
    fetch_timeout: float = 30.0

    # Processing settings
    resample: str = "lanczos"
    decode_workers: int = 4

    # Preview settings
    preview_grid_color: Tuple[int, int, int, int] = (128, 128, 128, 255)
    preview_tick_ms: int = 50

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "PipelineConfig":
        """Load configuration from TOML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix.lower() == '.toml':
            return cls._from_toml(config_path)
        elif config_path.suffix.lower() == '.json':
            return cls._from_json(config_path)
        else:
            raise ValueError(f"Unsupported configuration format: {config_path.suffix}")

    @classmethod
    def _from_toml(cls, config_path: Path) -> "PipelineConfig":
        """Load configuration from TOML file."""
        with open(config_path, 'rb') as f:
            data = tomllib.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_json(cls, config_path: Path) -> "PipelineConfig":
        """Load configuration from JSON file."""
        with open(config_path, 'r') as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Create configuration from dictionary."""
        config_data = {}

        # Handle grid settings
        if 'grid' in data:
            grid = data['grid']
            config_data['primary_axis'] = grid.get('primary_axis', 'x')
            config_data['blocks'] = grid.get('blocks', 10)

        # Handle show settings
        if 'show' in data:
            show = data['show']
            config_data['frame_time'] = show.get('frame_time', 4)
            # TOML has no null, so 0 also means "use every frame"
            config_data['frame_count'] = show.get('frame_count') or None

        # Handle archive settings
        if 'archive' in data:
            archive = data['archive']
            config_data['base_archive'] = archive.get('base_archive', 'cinemashow-0.2.jar')
            config_data['output_name'] = archive.get('output_name', 'cinemashow.done.jar')
            config_data['namespace'] = archive.get('namespace', 'cinemashow')
            config_data['compression_level'] = archive.get('compression_level', 6)
            config_data['fetch_timeout'] = float(archive.get('fetch_timeout', 30.0))

        # Handle processing settings
        if 'processing' in data:
            processing = data['processing']
            config_data['resample'] = processing.get('resample', 'lanczos')
            config_data['decode_workers'] = processing.get('decode_workers', 4)

        # Handle preview settings
        if 'preview' in data:
            preview = data['preview']
            if 'grid_color' in preview:
                config_data['preview_grid_color'] = tuple(preview['grid_color'])
            config_data['preview_tick_ms'] = preview.get('tick_ms', 50)

        return cls(**config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to the sectioned layout used by configuration files."""
        values = asdict(self)
        return {
            'grid': {
                'primary_axis': values['primary_axis'],
                'blocks': values['blocks'],
            },
            'show': {
                'frame_time': values['frame_time'],
                'frame_count': values['frame_count'] or 0,
            },
            'archive': {
                'base_archive': values['base_archive'],
                'output_name': values['output_name'],
                'namespace': values['namespace'],
                'compression_level': values['compression_level'],
                'fetch_timeout': values['fetch_timeout'],
            },
            'processing': {
                'resample': values['resample'],
                'decode_workers': values['decode_workers'],
            },
            'preview': {
                'grid_color': list(values['preview_grid_color']),
                'tick_ms': values['preview_tick_ms'],
            },
        }

    def to_toml(self) -> str:
        """Serialize configuration as TOML."""
        return toml.dumps(self.to_dict())

    def save(self, config_path: Union[str, Path]) -> Path:
        """Write configuration to a TOML or JSON file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() == '.json':
            config_path.write_text(json.dumps(self.to_dict(), indent=2) + "\n")
        else:
            config_path.write_text(self.to_toml())
        return config_path

    @classmethod
    def default(cls) -> "PipelineConfig":
        """Create default configuration with environment variable overrides."""
        config = cls()

        # Apply environment variable overrides
        config = cls._apply_env_overrides(config)

        return config

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create configuration from environment variables only."""
        config = cls()
        return cls._apply_env_overrides(config)

    @classmethod
    def _apply_env_overrides(cls, config: "PipelineConfig") -> "PipelineConfig":
        """Apply environment variable overrides to configuration."""

        # Grid settings
        if os.getenv('CINEMASHOW_PRIMARY_AXIS'):
            config.primary_axis = os.getenv('CINEMASHOW_PRIMARY_AXIS', 'x')

        if os.getenv('CINEMASHOW_BLOCKS'):
            config.blocks = int(os.getenv('CINEMASHOW_BLOCKS', '10'))

        # Show settings
        if os.getenv('CINEMASHOW_FRAME_TIME'):
            config.frame_time = int(os.getenv('CINEMASHOW_FRAME_TIME', '4'))

        if os.getenv('CINEMASHOW_FRAME_COUNT'):
            config.frame_count = int(os.getenv('CINEMASHOW_FRAME_COUNT', '0')) or None

        # Archive settings
        if os.getenv('CINEMASHOW_BASE_ARCHIVE'):
            config.base_archive = os.getenv('CINEMASHOW_BASE_ARCHIVE', 'cinemashow-0.2.jar')

        if os.getenv('CINEMASHOW_OUTPUT_NAME'):
            config.output_name = os.getenv('CINEMASHOW_OUTPUT_NAME', 'cinemashow.done.jar')

        if os.getenv('CINEMASHOW_NAMESPACE'):
            config.namespace = os.getenv('CINEMASHOW_NAMESPACE', 'cinemashow')

        if os.getenv('CINEMASHOW_COMPRESSION_LEVEL'):
            config.compression_level = int(os.getenv('CINEMASHOW_COMPRESSION_LEVEL', '6'))

        if os.getenv('CINEMASHOW_FETCH_TIMEOUT'):
            config.fetch_timeout = float(os.getenv('CINEMASHOW_FETCH_TIMEOUT', '30'))

        # Processing settings
        if os.getenv('CINEMASHOW_RESAMPLE'):
            config.resample = os.getenv('CINEMASHOW_RESAMPLE', 'lanczos')

        if os.getenv('CINEMASHOW_DECODE_WORKERS'):
            config.decode_workers = int(os.getenv('CINEMASHOW_DECODE_WORKERS', '4'))

        # Preview settings
        if os.getenv('CINEMASHOW_PREVIEW_TICK_MS'):
            config.preview_tick_ms = int(os.getenv('CINEMASHOW_PREVIEW_TICK_MS', '50'))

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        # Validate grid
        if str(self.primary_axis).lower() not in ('x', 'y', 'wide', 'high'):
            errors.append("primary_axis must be 'x' or 'y'")

        if not isinstance(self.blocks, int) or self.blocks <= 0:
            errors.append("blocks must be a positive integer")

        # Validate show settings
        if not isinstance(self.frame_time, int) or self.frame_time <= 0:
            errors.append("frame_time must be a positive integer")

        if self.frame_count is not None and (not isinstance(self.frame_count, int) or self.frame_count <= 0):
            errors.append("frame_count must be a positive integer or unset")

        # Validate archive settings
        if not self.base_archive:
            errors.append("base_archive cannot be empty")

        if not self.output_name:
            errors.append("output_name cannot be empty")

        if not 0 <= self.compression_level <= 9:
            errors.append("compression_level must be between 0 and 9")

        if self.fetch_timeout <= 0:
            errors.append("fetch_timeout must be positive")

        # Validate processing settings
        if str(self.resample).lower() not in RESAMPLE_METHODS:
            errors.append(f"resample must be one of {', '.join(RESAMPLE_METHODS)}")

        if self.decode_workers < 1:
            errors.append("decode_workers must be at least 1")

        # Validate preview settings
        if len(self.preview_grid_color) != 4 or not all(0 <= c <= 255 for c in self.preview_grid_color):
            errors.append("preview_grid_color must be four values between 0 and 255")

        if self.preview_tick_ms <= 0:
            errors.append("preview_tick_ms must be positive")

        return errors


ENV_VARS = [
    ("CINEMASHOW_PRIMARY_AXIS", "Axis with a fixed block count (x or y)", "x"),
    ("CINEMASHOW_BLOCKS", "Blocks along the primary axis", "10"),
    ("CINEMASHOW_FRAME_TIME", "Game ticks each frame is shown", "4"),
    ("CINEMASHOW_FRAME_COUNT", "Fixed number of frames per show (0 = all)", "16"),
    ("CINEMASHOW_BASE_ARCHIVE", "URL or path of the base archive", "cinemashow-0.2.jar"),
    ("CINEMASHOW_OUTPUT_NAME", "File name of the generated archive", "cinemashow.done.jar"),
    ("CINEMASHOW_NAMESPACE", "Resource namespace of generated files", "cinemashow"),
    ("CINEMASHOW_COMPRESSION_LEVEL", "Compression level (0-9)", "6"),
    ("CINEMASHOW_FETCH_TIMEOUT", "Base archive download timeout in seconds", "30"),
    ("CINEMASHOW_RESAMPLE", "Resampling method for frame scaling", "lanczos"),
    ("CINEMASHOW_DECODE_WORKERS", "Threads used to decode frames", "4"),
    ("CINEMASHOW_PREVIEW_TICK_MS", "Milliseconds per game tick in previews", "50"),
]
