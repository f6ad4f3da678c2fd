"""
Tests for show descriptor generation.
"""

import json
import unittest
from PIL import Image
import numpy as np

from ..processing.metadata import (
    AssetModelBuilder, AssetPaths, ShowConfig, InvalidNameError, MalformedDocumentError,
    ROTATION_VARIANTS,
    slugify, validate_show_name,
)
from ..processing.atlas import Tile, TileAtlasCompositor, iter_tiles
from ..processing.normalizer import Axis, GridSpec, DimensionNormalizer
from ..sources.base import FrameSet, ShowError


class TestSlugify(unittest.TestCase):
    """Test cases for show name normalization."""

    def test_punctuation_collapsed(self):
        self.assertEqual(slugify("Good Vintage!!"), "good_vintage")

    def test_accents_folded(self):
        self.assertEqual(slugify("Café Noir"), "cafe_noir")

    def test_runs_and_edges(self):
        self.assertEqual(slugify("  --Big   Screen 2--  "), "big_screen_2")

    def test_empty_slug_rejected(self):
        for name in ("", "   ", "!!!", "***"):
            with self.assertRaises(InvalidNameError):
                validate_show_name(name)


class TestShowConfig(unittest.TestCase):
    """Test cases for ShowConfig."""

    def setUp(self):
        self.grid = GridSpec(Axis.X, 4).with_secondary(2)

    def test_create(self):
        show = ShowConfig.create("  Good Vintage!!  ", self.grid, 6)

        self.assertEqual(show.name, "Good Vintage!!")
        self.assertEqual(show.slug, "good_vintage")
        self.assertEqual((show.blocks_x, show.blocks_y), (4, 2))
        self.assertEqual(show.frame_time, 6)

    def test_invalid_name(self):
        with self.assertRaises(InvalidNameError) as ctx:
            ShowConfig.create("???", self.grid)
        self.assertEqual(ctx.exception.name, "???")

    def test_invalid_frame_time(self):
        for frame_time in (0, -1, 1.5):
            with self.assertRaises(ValueError):
                ShowConfig.create("Show", self.grid, frame_time)


class TestAssetPaths(unittest.TestCase):
    """Test cases for archive path layout."""

    def test_paths(self):
        paths = AssetPaths("good_vintage")
        tile = Tile(3, 1)

        self.assertEqual(paths.registry, "assets/cinemashow/shows.json")
        self.assertEqual(paths.show, "assets/cinemashow/shows/show_good_vintage.json")
        self.assertEqual(paths.language, "assets/cinemashow/lang/en_us.json")
        self.assertEqual(paths.item_model, "assets/cinemashow/models/item/good_vintage.json")
        self.assertEqual(paths.blockstate, "assets/cinemashow/blockstates/good_vintage.json")
        self.assertEqual(paths.texture(tile), "assets/cinemashow/textures/block/good_vintage_3_1.png")
        self.assertEqual(paths.animation(tile), "assets/cinemashow/textures/block/good_vintage_3_1.png.mcmeta")
        self.assertEqual(paths.block_model(tile), "assets/cinemashow/models/block/good_vintage_3_1.json")
        self.assertEqual(paths.block_ref("back"), "cinemashow:block/back")


class TestAssetModelBuilder(unittest.TestCase):
    """Test cases for AssetModelBuilder."""

    def setUp(self):
        """Set up test fixtures."""
        self.builder = AssetModelBuilder()
        self.grid = GridSpec(Axis.X, 3).with_secondary(2)
        self.show = ShowConfig.create("Good Vintage!!", self.grid, 4)
        self.tiles = list(iter_tiles(self.grid))
        self.paths = AssetPaths(self.show.slug)

    def test_build_paths(self):
        documents = self.builder.build(self.show, self.tiles)

        expected = {
            self.paths.registry, self.paths.show, self.paths.language,
            self.paths.item_model, self.paths.blockstate,
        }
        for tile in self.tiles:
            expected.add(self.paths.block_model(tile))
            expected.add(self.paths.animation(tile))
        self.assertEqual(set(documents), expected)

    def test_show_document(self):
        documents = self.builder.build(self.show, self.tiles)

        self.assertEqual(documents["assets/cinemashow/shows/show_good_vintage.json"], {
            "showName": "Good Vintage!!",
            "frameTime": 4,
            "blocksX": 3,
            "blocksY": 2,
        })

    def test_variant_coverage(self):
        """Every facing is listed for every tile, each pointing at that tile's model."""
        document = self.builder.blockstate_document(self.show, self.tiles)
        variants = document["variants"]

        self.assertEqual(len(ROTATION_VARIANTS), 12)
        self.assertEqual(len(variants), 12 * 3 * 2)
        for rotation in ROTATION_VARIANTS:
            for tile in self.tiles:
                entry = variants[f"facing={rotation.facing},x={tile.x},y={tile.y}"]
                self.assertEqual(entry["model"], f"cinemashow:block/good_vintage_{tile.x}_{tile.y}")

    def test_variant_rotations(self):
        variants = self.builder.blockstate_document(self.show, self.tiles)["variants"]

        self.assertEqual(variants["facing=north,x=0,y=0"], {"model": "cinemashow:block/good_vintage_0_0"})
        self.assertEqual(variants["facing=east,x=0,y=0"]["y"], 90)
        self.assertEqual(variants["facing=west_up,x=1,y=1"], {
            "model": "cinemashow:block/good_vintage_1_1", "x": 270, "y": 270,
        })
        self.assertEqual(variants["facing=south_down,x=2,y=0"], {
            "model": "cinemashow:block/good_vintage_2_0", "x": 90, "y": 180,
        })

    def test_block_model(self):
        document = self.builder.block_model_document(self.show, Tile(2, 1))

        self.assertEqual(document["parent"], "minecraft:block/cube")
        self.assertEqual(document["textures"]["north"], "cinemashow:block/good_vintage_2_1")
        for face in ("down", "up", "east", "south", "west", "particle"):
            self.assertEqual(document["textures"][face], "cinemashow:block/back")

    def test_item_model(self):
        document = self.builder.item_model_document(self.show)

        self.assertEqual(document["textures"]["up"], "cinemashow:block/screen")
        self.assertEqual(document["textures"]["north"], "cinemashow:block/back")

    def test_animation_document(self):
        self.assertEqual(self.builder.animation_document(self.show), {"animation": {"frametime": 4}})

    def test_registry_created(self):
        self.assertEqual(self.builder.registry_document(self.show), {"shows": ["good_vintage"]})

    def test_registry_merged(self):
        existing = {"shows": ["intro"], "version": 2}
        document = self.builder.registry_document(self.show, existing)

        self.assertEqual(document, {"shows": ["intro", "good_vintage"], "version": 2})
        self.assertEqual(existing, {"shows": ["intro"], "version": 2})

    def test_registry_not_duplicated(self):
        existing = {"shows": ["good_vintage", "intro"]}
        document = self.builder.registry_document(self.show, existing)
        self.assertEqual(document["shows"], ["good_vintage", "intro"])

    def test_registry_malformed(self):
        for existing in ({"shows": "intro"}, {"shows": [1, 2]}, "intro", 42):
            with self.assertRaises(MalformedDocumentError) as ctx:
                self.builder.registry_document(self.show, existing)
            self.assertEqual(ctx.exception.path, "assets/cinemashow/shows.json")

    def test_registry_bare_list(self):
        """A registry stored as a plain list keeps every show already in it."""
        self.assertEqual(
            self.builder.registry_document(self.show, ["ab"]),
            {"shows": ["ab", "good_vintage"]},
        )
        self.assertEqual(
            self.builder.registry_document(self.show, ["intro", "outro"]),
            {"shows": ["intro", "outro", "good_vintage"]},
        )

    def test_registry_empty_list(self):
        self.assertEqual(self.builder.registry_document(self.show, []), {"shows": ["good_vintage"]})

    def test_language_malformed(self):
        for existing in (["block.cinemashow.intro"], "Intro"):
            with self.assertRaises(MalformedDocumentError):
                self.builder.language_document(self.show, existing)

    def test_malformed_document_is_show_error(self):
        self.assertTrue(issubclass(MalformedDocumentError, ShowError))

    def test_language_merged(self):
        existing = {"block.cinemashow.intro": "Intro"}
        document = self.builder.language_document(self.show, existing)

        self.assertEqual(document, {
            "block.cinemashow.intro": "Intro",
            "itemGroup.cinemashow": "Good Vintage!!",
            "block.cinemashow.good_vintage": "Good Vintage!!",
        })

    def test_tile_count_mismatch(self):
        with self.assertRaises(ValueError):
            self.builder.build(self.show, self.tiles[:-1])

    def test_deterministic_serialization(self):
        first = self.builder.serialize_all(self.builder.build(self.show, self.tiles))
        second = self.builder.serialize_all(self.builder.build(self.show, list(reversed(self.tiles))))

        self.assertEqual(first, second)

    def test_serialize_utf8(self):
        show = ShowConfig.create("Café", self.grid)
        data = self.builder.serialize(self.builder.show_document(show))

        self.assertTrue(data.endswith(b"\n"))
        self.assertIn("Café".encode('utf-8'), data)
        self.assertEqual(json.loads(data.decode('utf-8'))["showName"], "Café")

    def test_custom_namespace(self):
        builder = AssetModelBuilder("screens")
        documents = builder.build(self.show, self.tiles)

        self.assertIn("assets/screens/shows/show_good_vintage.json", documents)
        self.assertEqual(
            documents["assets/screens/models/item/good_vintage.json"]["textures"]["up"],
            "screens:block/screen",
        )

    def test_invalid_namespace(self):
        with self.assertRaises(ValueError):
            AssetModelBuilder("Cinema Show")


class TestFaceOrientation(unittest.TestCase):
    """Descriptors and atlases agree on which block of the picture each variant shows."""

    def setUp(self):
        """Build a 2x3 block picture with one solid color per block."""
        pixels = np.zeros((48, 32, 4), dtype=np.uint8)
        for bx in range(2):
            for by in range(3):
                pixels[by * 16:(by + 1) * 16, bx * 16:(bx + 1) * 16] = (bx * 100 + 50, by * 80 + 40, 0, 255)
        self.frames = FrameSet.from_images([Image.fromarray(pixels)])

        normalization = DimensionNormalizer().normalize(self.frames, GridSpec(Axis.X, 2))
        self.grid = normalization.grid
        atlases = TileAtlasCompositor('nearest').composite(self.frames, normalization)

        self.show = ShowConfig.create("Good Vintage!!", self.grid)
        self.paths = AssetPaths(self.show.slug)
        self.documents = AssetModelBuilder().build(self.show, [a.tile for a in atlases])
        self.variants = self.documents[self.paths.blockstate]["variants"]
        self.textures = {self.paths.texture(a.tile): a for a in atlases}

    def _screen_atlas(self, variant):
        """Follow a variant to its model's north texture and return that atlas."""
        namespace, model_name = variant["model"].split(":block/")
        model = self.documents[f"assets/{namespace}/models/block/{model_name}.json"]
        namespace, texture_name = model["textures"]["north"].split(":block/")
        return self.textures[f"assets/{namespace}/textures/block/{texture_name}.png"]

    def test_north_variant_shows_bottom_origin_block(self):
        """facing=north,x,y displays the block from raster row blocks_y - 1 - y."""
        self.assertEqual((self.grid.blocks_x, self.grid.blocks_y), (2, 3))
        picture = np.array(self.frames[0].raster)

        for tile in iter_tiles(self.grid):
            atlas = self._screen_atlas(self.variants[f"facing=north,x={tile.x},y={tile.y}"])
            row = self.grid.blocks_y - 1 - tile.y
            expected = picture[row * 16:(row + 1) * 16, tile.x * 16:(tile.x + 1) * 16]

            self.assertEqual(atlas.tile, tile)
            self.assertTrue(np.array_equal(np.array(atlas.band(0)), expected), f"tile {tile}")

    def test_bottom_left_tile_is_bottom_left_block(self):
        atlas = self._screen_atlas(self.variants["facing=north,x=0,y=0"])
        self.assertEqual(atlas.band(0).getpixel((0, 0)), (50, 200, 0, 255))

        atlas = self._screen_atlas(self.variants["facing=north,x=1,y=2"])
        self.assertEqual(atlas.band(0).getpixel((0, 0)), (150, 40, 0, 255))

    def test_screen_is_north_face(self):
        for tile in iter_tiles(self.grid):
            textures = self.documents[self.paths.block_model(tile)]["textures"]
            self.assertEqual(textures["north"], f"cinemashow:block/{self.paths.tile_name(tile)}")
            for face in ("down", "up", "east", "south", "west"):
                self.assertEqual(textures[face], "cinemashow:block/back")

    def test_pitched_variants_turn_north_screen(self):
        """_down tilts the north screen by x: 90 and _up by x: 270 on the same model."""
        for heading, yaw in (("north", 0), ("east", 90), ("south", 180), ("west", 270)):
            for tile in iter_tiles(self.grid):
                suffix = f"x={tile.x},y={tile.y}"
                level = self.variants[f"facing={heading},{suffix}"]
                down = self.variants[f"facing={heading}_down,{suffix}"]
                up = self.variants[f"facing={heading}_up,{suffix}"]

                self.assertEqual(level["model"], down["model"])
                self.assertEqual(level["model"], up["model"])
                self.assertNotIn("x", level)
                self.assertEqual(down["x"], 90)
                self.assertEqual(up["x"], 270)
                for variant in (level, down, up):
                    self.assertEqual(variant.get("y", 0), yaw)
                    self.assertEqual(self._screen_atlas(variant).tile, tile)


if __name__ == '__main__':
    unittest.main()
