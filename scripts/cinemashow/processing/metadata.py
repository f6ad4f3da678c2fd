"""
Descriptor generation for shows: item and block models, blockstates,
animation metadata, language entries and the show registry.
"""

import json
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from ..sources.base import ShowError
from .atlas import Tile
from .normalizer import GridSpec


logger = logging.getLogger(__name__)

NAMESPACE = "cinemashow"
DEFAULT_FRAME_TIME = 4

Document = Dict[str, Any]


def slugify(name: str) -> str:
    """
    Normalize a display name to an identifier-safe slug.

    Accents are folded to ASCII, letters lowercased, and every run of other
    characters collapsed to a single underscore.
    """
    folded = unicodedata.normalize('NFKD', name).encode('ascii', 'ignore').decode('ascii')
    return re.sub(r'[^a-z0-9]+', '_', folded.lower()).strip('_')


@dataclass(frozen=True)
class ShowConfig:
    """Immutable description of one show."""
    name: str
    slug: str
    frame_time: int
    blocks_x: int
    blocks_y: int

    def __post_init__(self):
        """Validate show configuration after initialization."""
        if not self.slug:
            raise InvalidNameError(self.name)
        if isinstance(self.frame_time, bool) or not isinstance(self.frame_time, int) or self.frame_time <= 0:
            raise ValueError(f"frame_time must be a positive integer, got {self.frame_time!r}")
        if self.blocks_x <= 0 or self.blocks_y <= 0:
            raise ValueError(f"Show needs at least one block, got {self.blocks_x}x{self.blocks_y}")

    @classmethod
    def create(cls, name: str, grid: GridSpec, frame_time: int = DEFAULT_FRAME_TIME) -> "ShowConfig":
        """
        Create a show configuration for a resolved grid.

        Raises:
            InvalidNameError: If the name normalizes to an empty slug
        """
        name = (name or "").strip()
        return cls(
            name=name,
            slug=validate_show_name(name),
            frame_time=frame_time,
            blocks_x=grid.blocks_x,
            blocks_y=grid.blocks_y,
        )


def validate_show_name(name: str) -> str:
    """Return the slug for a show name, raising InvalidNameError when it is empty."""
    slug = slugify(name or "")
    if not slug:
        raise InvalidNameError(name)
    return slug


@dataclass(frozen=True)
class RotationVariant:
    """A named screen orientation and the model rotation that produces it."""
    facing: str
    x: int = 0
    y: int = 0

    def rotation(self) -> Dict[str, int]:
        """Rotation keys for a blockstate entry; zero rotations are omitted."""
        rotation = {}
        if self.x:
            rotation["x"] = self.x
        if self.y:
            rotation["y"] = self.y
        return rotation


def _build_rotation_variants() -> Tuple[RotationVariant, ...]:
    # The model's screen is its north face. x: 90 turns it to face down,
    # x: 270 turns it to face up.
    headings = (("north", 0), ("east", 90), ("south", 180), ("west", 270))
    pitches = (("", 0), ("_down", 90), ("_up", 270))
    return tuple(
        RotationVariant(facing=f"{heading}{suffix}", x=pitch, y=yaw)
        for suffix, pitch in pitches
        for heading, yaw in headings
    )


ROTATION_VARIANTS = _build_rotation_variants()


class AssetPaths:
    """Deterministic archive paths and resource references for a show."""

    def __init__(self, slug: str, namespace: str = NAMESPACE):
        self.slug = slug
        self.namespace = namespace
        self.root = f"assets/{namespace}"

    @property
    def registry(self) -> str:
        return f"{self.root}/shows.json"

    @property
    def show(self) -> str:
        return f"{self.root}/shows/show_{self.slug}.json"

    @property
    def language(self) -> str:
        return f"{self.root}/lang/en_us.json"

    @property
    def item_model(self) -> str:
        return f"{self.root}/models/item/{self.slug}.json"

    @property
    def blockstate(self) -> str:
        return f"{self.root}/blockstates/{self.slug}.json"

    def tile_name(self, tile: Tile) -> str:
        return f"{self.slug}_{tile.x}_{tile.y}"

    def texture(self, tile: Tile) -> str:
        return f"{self.root}/textures/block/{self.tile_name(tile)}.png"

    def animation(self, tile: Tile) -> str:
        return f"{self.texture(tile)}.mcmeta"

    def block_model(self, tile: Tile) -> str:
        return f"{self.root}/models/block/{self.tile_name(tile)}.json"

    def block_ref(self, name: str) -> str:
        """Resource reference to a block texture or model, e.g. cinemashow:block/back."""
        return f"{self.namespace}:block/{name}"


class AssetModelBuilder:
    """Generates every descriptor document a show needs."""

    CUBE_PARENT = "minecraft:block/cube"
    CUBE_FACES = ("down", "up", "north", "east", "south", "west")
    SCREEN_TEXTURE = "screen"
    BACK_TEXTURE = "back"
    ITEM_GROUP_KEY = "itemGroup.{namespace}"
    BLOCK_KEY = "block.{namespace}.{slug}"

    def __init__(self, namespace: str = NAMESPACE):
        """
        Initialize builder.

        Args:
            namespace: Resource namespace the generated files live under
        """
        if not re.fullmatch(r'[a-z0-9_.-]+', namespace):
            raise ValueError(f"Invalid resource namespace '{namespace}'")
        self.namespace = namespace

    def paths(self, show: ShowConfig) -> AssetPaths:
        return AssetPaths(show.slug, self.namespace)

    def registry_document(self, show: ShowConfig, existing: Optional[Any] = None) -> Document:
        """
        Show registry with this show appended.

        Identifiers already registered (and any other keys) are kept; the
        show is added only once. A bare list of identifiers is accepted as
        the registry's show list.

        Raises:
            MalformedDocumentError: If the existing registry has any other shape
        """
        path = self.paths(show).registry
        if existing is None:
            document = {}
        elif isinstance(existing, list):
            logger.info(f"Registry {path} is a bare list, wrapping it as 'shows'")
            document = {"shows": existing}
        elif isinstance(existing, dict):
            document = dict(existing)
        else:
            raise MalformedDocumentError(path, f"expected an object or a list, got {type(existing).__name__}")

        shows = document.get("shows", [])
        if not isinstance(shows, list) or not all(isinstance(s, str) for s in shows):
            raise MalformedDocumentError(path, "'shows' must be a list of show identifiers")

        shows = list(shows)
        if show.slug not in shows:
            shows.append(show.slug)
        else:
            logger.info(f"Show '{show.slug}' is already registered, keeping registry order")
        document["shows"] = shows
        return document

    def show_document(self, show: ShowConfig) -> Document:
        return {
            "showName": show.name,
            "frameTime": show.frame_time,
            "blocksX": show.blocks_x,
            "blocksY": show.blocks_y,
        }

    def language_document(self, show: ShowConfig, existing: Optional[Any] = None) -> Document:
        """
        Language entries for the item group and the show's block, merged into existing ones.

        Raises:
            MalformedDocumentError: If the existing language file is not an object
        """
        if existing is not None and not isinstance(existing, dict):
            raise MalformedDocumentError(
                self.paths(show).language, f"expected an object, got {type(existing).__name__}"
            )
        document = dict(existing) if existing else {}
        document[self.ITEM_GROUP_KEY.format(namespace=self.namespace)] = show.name
        document[self.BLOCK_KEY.format(namespace=self.namespace, slug=show.slug)] = show.name
        return document

    def item_model_document(self, show: ShowConfig) -> Document:
        """Unit cube with the screen texture on top and the back texture elsewhere."""
        paths = self.paths(show)
        return self._cube(paths, {"up": paths.block_ref(self.SCREEN_TEXTURE)})

    def block_model_document(self, show: ShowConfig, tile: Tile) -> Document:
        """Unit cube showing the tile's atlas on its north face."""
        paths = self.paths(show)
        return self._cube(paths, {"north": paths.block_ref(paths.tile_name(tile))})

    def animation_document(self, show: ShowConfig) -> Document:
        return {"animation": {"frametime": show.frame_time}}

    def blockstate_document(self, show: ShowConfig, tiles: Iterable[Tile]) -> Document:
        """One variant per (facing, x, y)."""
        paths = self.paths(show)
        tiles = sorted(tiles)
        variants = {}
        for variant in ROTATION_VARIANTS:
            for tile in tiles:
                key = f"facing={variant.facing},x={tile.x},y={tile.y}"
                entry = {"model": paths.block_ref(paths.tile_name(tile))}
                entry.update(variant.rotation())
                variants[key] = entry
        return {"variants": variants}

    def build(self, show: ShowConfig, tiles: Iterable[Tile],
              existing_registry: Optional[Any] = None,
              existing_language: Optional[Any] = None) -> Dict[str, Document]:
        """
        Build every descriptor for a show.

        Args:
            show: Show configuration
            tiles: Tiles of the show's grid
            existing_registry: Registry already present in the base archive
            existing_language: Language file already present in the base archive

        Returns:
            Mapping of archive path to JSON document
        """
        tiles = sorted(tiles)
        expected = show.blocks_x * show.blocks_y
        if len(tiles) != expected:
            raise ValueError(f"Expected {expected} tiles for a {show.blocks_x}x{show.blocks_y} show, got {len(tiles)}")

        paths = self.paths(show)
        documents = {
            paths.registry: self.registry_document(show, existing_registry),
            paths.show: self.show_document(show),
            paths.language: self.language_document(show, existing_language),
            paths.item_model: self.item_model_document(show),
            paths.blockstate: self.blockstate_document(show, tiles),
        }
        for tile in tiles:
            documents[paths.block_model(tile)] = self.block_model_document(show, tile)
            documents[paths.animation(tile)] = self.animation_document(show)

        logger.info(f"Generated {len(documents)} descriptors for show '{show.slug}'")
        return documents

    @staticmethod
    def serialize(document: Document) -> bytes:
        """Encode a document as UTF-8 JSON."""
        return (json.dumps(document, indent=2, ensure_ascii=False) + "\n").encode('utf-8')

    def serialize_all(self, documents: Dict[str, Document]) -> Dict[str, bytes]:
        return {path: self.serialize(document) for path, document in documents.items()}

    def _cube(self, paths: AssetPaths, overrides: Dict[str, str]) -> Document:
        back = paths.block_ref(self.BACK_TEXTURE)
        textures = {"particle": back}
        for face in self.CUBE_FACES:
            textures[face] = overrides.get(face, back)
        return {"parent": self.CUBE_PARENT, "textures": textures}


class InvalidNameError(ShowError):
    """Exception raised when a show name has no identifier-safe characters."""

    def __init__(self, name: str):
        super().__init__(f"Show name {name!r} does not contain any letters or digits")
        self.name = name


class MalformedDocumentError(ShowError):
    """Exception raised when a descriptor already in the base archive cannot be merged."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot merge existing {path}: {reason}")
        self.path = path
