"""
Tests for pipeline configuration.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from ..config import PipelineConfig, ENV_VARS


class TestPipelineConfig(unittest.TestCase):
    """Test cases for PipelineConfig."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self):
        """Clean up test fixtures."""
        self.temp_dir.cleanup()

    def test_defaults(self):
        config = PipelineConfig()

        self.assertEqual(config.primary_axis, "x")
        self.assertEqual(config.blocks, 10)
        self.assertEqual(config.frame_time, 4)
        self.assertIsNone(config.frame_count)
        self.assertEqual(config.base_archive, "cinemashow-0.2.jar")
        self.assertEqual(config.output_name, "cinemashow.done.jar")
        self.assertEqual(config.validate(), [])

    def test_from_toml(self):
        path = self.root / "cinemashow.toml"
        path.write_text(
            "[grid]\n"
            "primary_axis = \"y\"\n"
            "blocks = 6\n"
            "\n"
            "[show]\n"
            "frame_time = 2\n"
            "frame_count = 16\n"
            "\n"
            "[archive]\n"
            "base_archive = \"https://example.com/base.jar\"\n"
            "compression_level = 9\n"
            "\n"
            "[preview]\n"
            "grid_color = [255, 0, 0, 128]\n"
        )

        config = PipelineConfig.from_file(path)

        self.assertEqual(config.primary_axis, "y")
        self.assertEqual(config.blocks, 6)
        self.assertEqual(config.frame_time, 2)
        self.assertEqual(config.frame_count, 16)
        self.assertEqual(config.base_archive, "https://example.com/base.jar")
        self.assertEqual(config.compression_level, 9)
        self.assertEqual(config.preview_grid_color, (255, 0, 0, 128))
        self.assertEqual(config.resample, "lanczos")

    def test_from_json(self):
        path = self.root / "cinemashow.json"
        path.write_text(json.dumps({
            "grid": {"blocks": 3},
            "processing": {"resample": "nearest", "decode_workers": 1},
        }))

        config = PipelineConfig.from_file(path)

        self.assertEqual(config.blocks, 3)
        self.assertEqual(config.resample, "nearest")
        self.assertEqual(config.decode_workers, 1)

    def test_zero_frame_count_means_all_frames(self):
        path = self.root / "cinemashow.toml"
        path.write_text("[show]\nframe_count = 0\n")
        self.assertIsNone(PipelineConfig.from_file(path).frame_count)

    def test_unsupported_format(self):
        path = self.root / "cinemashow.yaml"
        path.write_text("blocks: 3\n")
        with self.assertRaises(ValueError):
            PipelineConfig.from_file(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            PipelineConfig.from_file(self.root / "missing.toml")

    def test_save_and_reload(self):
        config = PipelineConfig(primary_axis="y", blocks=7, frame_count=12, namespace="screens")

        for name in ("saved.toml", "saved.json"):
            reloaded = PipelineConfig.from_file(config.save(self.root / name))
            self.assertEqual(reloaded, config)

    def test_environment_overrides(self):
        env_vars = {
            "CINEMASHOW_BLOCKS": "8",
            "CINEMASHOW_PRIMARY_AXIS": "y",
            "CINEMASHOW_FRAME_COUNT": "0",
            "CINEMASHOW_BASE_ARCHIVE": "http://localhost/base.jar",
            "CINEMASHOW_FETCH_TIMEOUT": "2.5",
        }
        with patch.dict(os.environ, env_vars):
            config = PipelineConfig.default()

        self.assertEqual(config.blocks, 8)
        self.assertEqual(config.primary_axis, "y")
        self.assertIsNone(config.frame_count)
        self.assertEqual(config.base_archive, "http://localhost/base.jar")
        self.assertEqual(config.fetch_timeout, 2.5)

    def test_env_vars_documented(self):
        names = [name for name, _, _ in ENV_VARS]
        self.assertTrue(all(name.startswith("CINEMASHOW_") for name in names))
        self.assertIn("CINEMASHOW_BLOCKS", names)

    def test_validate(self):
        config = PipelineConfig(
            primary_axis="z",
            blocks=0,
            frame_time=-1,
            frame_count=-5,
            compression_level=12,
            resample="sharpest",
            decode_workers=0,
            preview_grid_color=(0, 0, 300, 0),
        )

        errors = config.validate()

        self.assertEqual(len(errors), 8)
        self.assertTrue(any("primary_axis" in e for e in errors))
        self.assertTrue(any("resample" in e for e in errors))


if __name__ == '__main__':
    unittest.main()
