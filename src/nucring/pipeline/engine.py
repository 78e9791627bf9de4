"""AnalysisEngine — batch orchestration over every image in the input tree."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

from nucring.core.archive import RegionArchive
from nucring.core.config import AnalysisConfig
from nucring.core.exceptions import ConfigurationError, IOFailure, ReconciliationMismatch
from nucring.core.models import CellRecord, RegionKind
from nucring.core.results import RESULTS_FILENAME, ResultStore
from nucring.io.scanner import ChannelScanner, ImageGroup
from nucring.measure.measurer import Measurer
from nucring.measure.reconcile import ResultReconciler
from nucring.pipeline.context import ProcessingContext
from nucring.segment.annulus import AnnulusGenerator
from nucring.segment.base_segmenter import BaseSegmenter, SegmentationParams
from nucring.segment.nuclear import NuclearSegmenter

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Which passes a run performs."""

    ALL = "all"
    SEGMENT = "segment"
    MEASURE = "measure"


@dataclass(frozen=True)
class ImageOutcome:
    """What happened to one source image."""

    filename: str
    status: str
    nuclei: int = 0
    records: list[CellRecord] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Result of a batch run.

    Attributes:
        images_found: Number of source images discovered.
        images_processed: Images that completed without error.
        cell_count: Nuclei detected (or loaded) across processed images.
        rows_written: Rows appended to Results.csv.
        warnings: Per-image warnings and failures.
        elapsed_seconds: Wall-clock time of the run.
        cancelled: True if the run stopped early on request.
        image_stats: One dict per image handled (filename, status, nuclei).
    """

    images_found: int
    images_processed: int
    cell_count: int
    rows_written: int
    warnings: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    cancelled: bool = False
    image_stats: list[dict[str, object]] = field(default_factory=list)


class AnalysisEngine:
    """Segment, derive rings, measure, and reconcile every image of a batch.

    Images are independent: a failure in one image is logged and recorded as
    a warning, and the batch continues with the next image. Rows are appended
    to the result store in traversal order, one image at a time.

    Args:
        config: Validated analysis settings.
        segmenter: Nuclear segmentation backend (default NuclearSegmenter).
        measurer: Measurement engine (default Measurer).
    """

    def __init__(
        self,
        config: AnalysisConfig,
        segmenter: BaseSegmenter | None = None,
        measurer: Measurer | None = None,
    ) -> None:
        if config.input_dir is None:
            raise ConfigurationError("input_dir", "an input directory is required")
        if config.output_dir is None:
            raise ConfigurationError("output_dir", "an output directory is required")
        self.config = config
        self.params = SegmentationParams.from_config(config)
        self._segmenter = segmenter or NuclearSegmenter()
        self._measurer = measurer or Measurer()
        self._annulus = AnnulusGenerator(config.cytoplasm_thickness, config.exclusive_cytoplasm)
        self._reconciler = ResultReconciler(config.measure_channels)
        self.archive = RegionArchive(config.output_dir)
        self.store = ResultStore(config.output_dir / RESULTS_FILENAME, config.measure_channels)

    def run(
        self,
        stage: Stage = Stage.ALL,
        append: bool = False,
        progress_callback: Callable[[int, int, str], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Process every image group found under ``config.input_dir``.

        Args:
            stage: ALL, SEGMENT (archives only) or MEASURE (from archives).
            append: Keep existing Results.csv rows instead of starting fresh.
            progress_callback: Optional callback(current, total, filename).
            cancel_event: Checked between images; set it to stop early.

        Returns:
            BatchResult with run statistics.

        Raises:
            ConfigurationError: If an existing Results.csv has another layout.
            FileNotFoundError: If the input directory does not exist.
        """
        start = time.monotonic()
        stage = Stage(stage)
        groups = ChannelScanner(self.config.file_suffix).scan(self.config.input_dir)
        logger.info("Found %d images under %s", len(groups), self.config.input_dir)

        if stage is not Stage.SEGMENT:
            if append:
                self.store.ensure_header()
            else:
                self.store.reset()

        warnings: list[str] = []
        image_stats: list[dict[str, object]] = []
        processed = cells = rows = 0
        total = len(groups)
        handled = 0

        for outcome in self._outcomes(groups, stage, cancel_event):
            handled += 1
            if outcome.status == "ok":
                rows += self.store.append(outcome.records)
                processed += 1
                cells += outcome.nuclei
                if outcome.nuclei == 0:
                    warnings.append(f"{outcome.filename}: 0 nuclei detected")
            else:
                warnings.append(f"{outcome.filename}: {outcome.status}: {outcome.error}")
            image_stats.append({
                "filename": outcome.filename,
                "status": outcome.status,
                "nuclei": outcome.nuclei,
                "rows": len(outcome.records),
            })
            if progress_callback:
                progress_callback(handled, total, outcome.filename)

        cancelled = handled < total
        if cancelled:
            warnings.append(f"Cancelled after {handled} of {total} images")

        return BatchResult(
            images_found=total,
            images_processed=processed,
            cell_count=cells,
            rows_written=rows,
            warnings=warnings,
            elapsed_seconds=round(time.monotonic() - start, 3),
            cancelled=cancelled,
            image_stats=image_stats,
        )

    def _outcomes(
        self,
        groups: list[ImageGroup],
        stage: Stage,
        cancel_event: threading.Event | None,
    ) -> Iterator[ImageOutcome]:
        """Yield outcomes in traversal order, processing up to ``workers`` at once."""

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        if self.config.workers == 1:
            for group in groups:
                if cancelled():
                    return
                yield self.process_image(group, stage)
            return

        remaining = iter(groups)
        pending: deque[Future[ImageOutcome]] = deque()
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            for group in remaining:
                pending.append(pool.submit(self.process_image, group, stage))
                if len(pending) >= self.config.workers:
                    break
            while pending:
                outcome = pending.popleft().result()
                if not cancelled():
                    group = next(remaining, None)
                    if group is not None:
                        pending.append(pool.submit(self.process_image, group, stage))
                yield outcome

    def process_image(self, group: ImageGroup, stage: Stage = Stage.ALL) -> ImageOutcome:
        """Run the requested stages on one image; never raises for image-level errors."""
        try:
            with ProcessingContext(group, self.config) as ctx:
                return self._process(ctx, Stage(stage))
        except IOFailure as exc:
            logger.warning("Skipping %s: %s", group.filename, exc)
            return ImageOutcome(group.filename, "failed", error=str(exc))
        except ReconciliationMismatch as exc:
            logger.error(
                "Reconciliation failed for %s at ordinal %d: %s",
                exc.filename, exc.ordinal, exc,
            )
            return ImageOutcome(group.filename, "mismatch", error=str(exc))
        except Exception as exc:
            if isinstance(exc, (MemoryError, KeyboardInterrupt, SystemExit)):
                raise
            logger.warning(
                "Processing failed for %s: %s", group.filename, exc, exc_info=True,
            )
            return ImageOutcome(group.filename, "failed", error=f"{type(exc).__name__}: {exc}")

    def _process(self, ctx: ProcessingContext, stage: Stage) -> ImageOutcome:
        if stage is not Stage.SEGMENT:
            ctx.require_channels(list(self.config.measure_channels))

        if stage is Stage.MEASURE:
            ctx.nuclei = self.archive.read(ctx.source, RegionKind.NUCLEUS)
            ctx.cytoplasm = self.archive.read(ctx.source, RegionKind.CYTOPLASM)
        else:
            self.segment(ctx)

        if stage is Stage.SEGMENT:
            return ImageOutcome(ctx.filename, "ok", nuclei=len(ctx.nuclei))

        records = self.measure(ctx)
        return ImageOutcome(ctx.filename, "ok", nuclei=len(ctx.nuclei), records=records)

    def segment(self, ctx: ProcessingContext) -> None:
        """Fill ``ctx.nuclei`` and ``ctx.cytoplasm`` and archive both sets.

        With ``reuse_archive`` an existing pair of archives is loaded instead.
        """
        if self.config.reuse_archive and all(
            self.archive.exists(ctx.source, kind) for kind in RegionKind
        ):
            ctx.nuclei = self.archive.read(ctx.source, RegionKind.NUCLEUS)
            ctx.cytoplasm = self.archive.read(ctx.source, RegionKind.CYTOPLASM)
            logger.info("%s: reusing %d archived nuclei", ctx.source, len(ctx.nuclei))
            return

        nuclear = ctx.raster(self.config.nuclear_channel)
        ctx.nuclei = self._segmenter.detect(nuclear, self.params)
        ctx.cytoplasm = self._annulus.derive(ctx.nuclei, nuclear.pixel_size_um)

        self.archive.write(ctx.nuclei)
        self.archive.write(ctx.cytoplasm)

    def measure(self, ctx: ProcessingContext) -> list[CellRecord]:
        """Measure both region sets on every auxiliary channel and reconcile."""
        assert ctx.nuclei is not None and ctx.cytoplasm is not None
        for channel in self.config.measure_channels:
            raster = ctx.raster(channel)
            ctx.measurements.extend(self._measurer.measure(ctx.nuclei, raster))
            ctx.measurements.extend(self._measurer.measure(ctx.cytoplasm, raster))

        centroids = self._measurer.centroids(ctx.nuclei, ctx.pixel_size_um)
        return self._reconciler.reconcile(
            ctx.filename, ctx.nuclei.ordinals, ctx.measurements, centroids,
        )
