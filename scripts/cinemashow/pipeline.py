"""
Show pipeline coordinator.
Runs decode, fetch, normalize, composite, describe and export in order and
stops at the first failure.
"""

import time
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any, Mapping, Union
from dataclasses import dataclass, field

from .config import PipelineConfig
from .sources.base import FrameSet, ShowError
from .sources.frames import FrameLoader
from .sources.archive import BaseArchiveSource
from .processing.normalizer import (
    Axis, GridSpec, DimensionNormalizer, NormalizationResult, EmptyFrameSetError,
)
from .processing.atlas import TileAtlas, TileAtlasCompositor
from .processing.metadata import AssetModelBuilder, ShowConfig, AssetPaths, validate_show_name
from .processing.exporter import ArchiveExporter


class PipelineStep(Enum):
    """Enumeration of pipeline steps, in execution order."""
    DECODE = "decode"
    FETCH = "fetch"
    NORMALIZE = "normalize"
    COMPOSITE = "composite"
    DESCRIBE = "describe"
    EXPORT = "export"


@dataclass
class StepResult:
    """Result of a pipeline step execution."""
    step: PipelineStep
    success: bool
    duration: float
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)


@dataclass
class PipelineState:
    """Current state of the pipeline execution."""
    current_step: Optional[PipelineStep] = None
    completed_steps: List[PipelineStep] = field(default_factory=list)
    failed_step: Optional[PipelineStep] = None
    step_results: Dict[PipelineStep, StepResult] = field(default_factory=dict)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def duration(self) -> float:
        if self.start_time is None:
            return 0.0
        return (self.end_time or time.time()) - self.start_time


@dataclass(frozen=True)
class ShowRequest:
    """Caller-supplied parameters of one show."""
    name: str
    blocks: int
    primary_axis: Axis = Axis.X
    frame_time: int = 4

    def __post_init__(self):
        if isinstance(self.frame_time, bool) or not isinstance(self.frame_time, int) or self.frame_time <= 0:
            raise ValueError(f"frame_time must be a positive integer, got {self.frame_time!r}")

    @classmethod
    def from_config(cls, name: str, config: PipelineConfig, **overrides) -> "ShowRequest":
        """Build a request from configuration defaults; None overrides are ignored."""
        values = {
            'name': name,
            'blocks': config.blocks,
            'primary_axis': Axis.parse(config.primary_axis),
            'frame_time': config.frame_time,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        values['primary_axis'] = Axis.parse(values['primary_axis'])
        return cls(**values)

    def grid(self) -> GridSpec:
        return GridSpec(primary_axis=self.primary_axis, blocks_primary=self.blocks)


@dataclass
class ShowResult:
    """Everything a successful run produced."""
    show: ShowConfig
    normalization: NormalizationResult
    atlases: List[TileAtlas]
    documents: Dict[str, Any]
    archive: bytes
    state: PipelineState

    @property
    def grid(self) -> GridSpec:
        return self.normalization.grid


class PipelineBusyError(ShowError):
    """Exception raised when a run is started while another is in flight."""


class ShowPipeline:
    """
    Main pipeline coordinator that turns frame blobs into a show archive.

    Every stage fails fast; the first error aborts the run and is re-raised
    unchanged, so no partial archive is ever produced.
    """

    def __init__(self, config: Optional[PipelineConfig] = None,
                 archive_source: Optional[BaseArchiveSource] = None):
        """
        Initialize the show pipeline.

        Args:
            config: Pipeline configuration
            archive_source: Source of the base archive; built from config when omitted
        """
        self.config = config or PipelineConfig.default()
        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid pipeline configuration: {'; '.join(errors)}")

        self.logger = self._setup_logging()
        self.state = PipelineState()
        self._run_lock = threading.Lock()

        self.loader = FrameLoader(self.config.decode_workers)
        self.archive_source = archive_source or BaseArchiveSource(
            self.config.base_archive, timeout=self.config.fetch_timeout
        )
        self.normalizer = DimensionNormalizer()
        self.compositor = TileAtlasCompositor(self.config.resample)
        self.builder = AssetModelBuilder(self.config.namespace)
        self.exporter = ArchiveExporter(self.config.compression_level)

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the pipeline."""
        logger = logging.getLogger("cinemashow")
        logger.setLevel(logging.INFO)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def run(self, blobs: Mapping[str, bytes], request: ShowRequest) -> ShowResult:
        """
        Run the complete pipeline for one show.

        Args:
            blobs: Frame image bytes keyed by name; names only define the order
            request: Show name and grid parameters

        Returns:
            ShowResult holding the final archive bytes

        Raises:
            PipelineBusyError: If another run is in progress on this pipeline
            ShowError: The first failure of any stage
        """
        if not self._run_lock.acquire(blocking=False):
            raise PipelineBusyError("A show pipeline run is already in progress")

        try:
            return self._run(blobs, request)
        finally:
            self._run_lock.release()

    def run_directory(self, frames_dir: Union[str, Path], request: ShowRequest) -> ShowResult:
        """Run the pipeline on every frame image in a directory."""
        frames_dir = Path(frames_dir)
        if not frames_dir.is_dir():
            raise FileNotFoundError(f"Frame directory not found: {frames_dir}")
        return self.run(FrameLoader.read_directory(frames_dir), request)

    def plan(self, frame_set: FrameSet, request: ShowRequest) -> NormalizationResult:
        """
        Normalize a frame set without compositing or exporting anything.

        The frame set is used as given; call apply_frame_count first to
        plan with the configured frame count.
        """
        return self.normalizer.normalize(frame_set, request.grid())

    def apply_frame_count(self, frame_set: FrameSet) -> FrameSet:
        """Trim or repeat frames to the configured frame count."""
        frame_count = self.config.frame_count
        if frame_count is None or frame_set.is_empty or len(frame_set) == frame_count:
            return frame_set

        action = "Dropping" if len(frame_set) > frame_count else "Repeating"
        self.logger.warning(
            f"{action} frames: got {len(frame_set)}, shows use exactly {frame_count}"
        )
        return frame_set.resized_to(frame_count)

    def _run(self, blobs: Mapping[str, bytes], request: ShowRequest) -> ShowResult:
        self.state = PipelineState(start_time=time.time())
        self.logger.info(f"Starting show pipeline for '{request.name}'")

        try:
            # Reject a bad name before any decoding work
            validate_show_name(request.name)

            frame_set = self._execute_step(PipelineStep.DECODE, lambda: self._decode(blobs))
            base_archive = self._execute_step(PipelineStep.FETCH, self.archive_source.fetch)
            normalization = self._execute_step(
                PipelineStep.NORMALIZE, lambda: self.normalizer.normalize(frame_set, request.grid())
            )
            atlases = self._execute_step(
                PipelineStep.COMPOSITE, lambda: self.compositor.composite(frame_set, normalization)
            )
            show = ShowConfig.create(request.name, normalization.grid, request.frame_time)
            documents = self._execute_step(
                PipelineStep.DESCRIBE, lambda: self._describe(show, atlases, base_archive)
            )
            archive = self._execute_step(
                PipelineStep.EXPORT,
                lambda: self.exporter.export(base_archive, self._files(show, atlases, documents)),
            )
        finally:
            self.state.end_time = time.time()
            self.state.current_step = None
            self._generate_execution_summary()

        return ShowResult(
            show=show,
            normalization=normalization,
            atlases=atlases,
            documents=documents,
            archive=archive,
            state=self.state,
        )

    def _execute_step(self, step: PipelineStep, handler):
        """
        Execute a single pipeline step with error handling and timing.

        Args:
            step: Step to execute
            handler: Callable producing the step's output
        """
        self.state.current_step = step
        self.logger.info(f"Executing step: {step.value}")

        start_time = time.time()

        try:
            output = handler()
        except Exception as e:
            duration = time.time() - start_time
            self.state.step_results[step] = StepResult(
                step=step,
                success=False,
                duration=duration,
                message=f"Step {step.value} failed: {e}",
                errors=[str(e)],
            )
            self.state.failed_step = step
            self.logger.error(f"Step {step.value} failed after {duration:.2f}s: {e}")
            raise

        duration = time.time() - start_time
        self.state.step_results[step] = StepResult(
            step=step,
            success=True,
            duration=duration,
            message=f"Step {step.value} completed successfully",
            data=self._describe_output(output),
        )
        self.state.completed_steps.append(step)
        self.logger.info(f"Step {step.value} completed in {duration:.2f}s")

        return output

    def _decode(self, blobs: Mapping[str, bytes]) -> FrameSet:
        frame_set = self.loader.load_blobs(blobs)
        # No frames means nothing to export; fail before fetching the base archive
        if frame_set.is_empty:
            raise EmptyFrameSetError("No frames to build a show from")
        return self.apply_frame_count(frame_set)

    def _describe(self, show: ShowConfig, atlases: List[TileAtlas], base_archive: bytes) -> Dict[str, Any]:
        paths = AssetPaths(show.slug, self.config.namespace)
        return self.builder.build(
            show,
            [atlas.tile for atlas in atlases],
            existing_registry=self.exporter.read_json(base_archive, paths.registry),
            existing_language=self.exporter.read_json(base_archive, paths.language),
        )

    def _files(self, show: ShowConfig, atlases: List[TileAtlas],
               documents: Dict[str, Any]) -> Dict[str, bytes]:
        paths = AssetPaths(show.slug, self.config.namespace)
        files = self.builder.serialize_all(documents)
        for atlas in atlases:
            files[paths.texture(atlas.tile)] = atlas.to_png_bytes(self.config.compression_level)
        return files

    @staticmethod
    def _describe_output(output: Any) -> Dict[str, Any]:
        if isinstance(output, FrameSet):
            return {"frames": len(output)}
        if isinstance(output, NormalizationResult):
            return {
                "blocks_x": output.grid.blocks_x,
                "blocks_y": output.grid.blocks_y,
                "cross_axis_length": output.cross_axis_length,
                "upscaled_frames": output.upscaled_frames,
            }
        if isinstance(output, bytes):
            return {"bytes": len(output)}
        if isinstance(output, (list, dict)):
            return {"items": len(output)}
        return {}

    def _generate_execution_summary(self):
        """Generate and log execution summary."""
        self.logger.info("=" * 60)
        self.logger.info("SHOW PIPELINE SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Total execution time: {self.state.duration:.2f}s")
        self.logger.info(f"Steps completed: {len(self.state.completed_steps)}")

        if self.state.failed_step:
            result = self.state.step_results.get(self.state.failed_step)
            if result:
                self.logger.info(f"Failed step: {self.state.failed_step.value}: {result.message}")

        for step, result in self.state.step_results.items():
            status = "✓" if result.success else "✗"
            self.logger.info(f"  {status} {step.value}: {result.duration:.2f}s")

        self.logger.info("=" * 60)
