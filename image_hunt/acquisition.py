"""Persistent download loop that keeps candidates until the quota is met."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from .config import HuntConfig, QualityStandard
from .errors import HuntError
from .fetch import HttpClient
from .images import inspect_image
from .models import (
    TIER_FAILED,
    TIER_THUMBNAIL,
    AcquisitionResult,
    ImageCandidate,
    ImageMetadata,
)
from .quality import admit, admit_declared, describe
from .resolver import ResolutionStrategist
from .storage import delete_file, ensure_directory, write_stream
from .urls import image_extension
from .utils import slugify

logger = logging.getLogger("image_hunt.acquisition")

CANDIDATES_SUBDIR = "candidates"


@dataclass
class AcquisitionOutcome:
    """Result list and counters for one run of the acquisition loop."""

    search_term: str
    target: int
    candidate_count: int
    results: List[AcquisitionResult] = field(default_factory=list)
    kept: int = 0
    processed: int = 0
    elapsed_seconds: float = 0.0
    output_dir: Optional[Path] = None

    @property
    def complete(self) -> bool:
        return self.kept >= self.target

    @property
    def kept_results(self) -> List[AcquisitionResult]:
        return [result for result in self.results if result.kept]

    def tier_breakdown(self) -> Dict[str, int]:
        return dict(Counter(r.resolution_tier for r in self.kept_results))

    def method_breakdown(self) -> Dict[str, int]:
        return dict(Counter(r.candidate.extraction_method for r in self.kept_results))

    def best_captures(self, limit: int = 3) -> List[AcquisitionResult]:
        measured = [r for r in self.kept_results if r.metadata is not None]
        measured.sort(key=lambda r: r.metadata.quality_score, reverse=True)
        return measured[:limit]


def search_folder_name(search_term: str) -> str:
    return slugify(search_term, fallback="search")


def build_filename(
    search_term: str, keeper_number: int, tier: str, extension: str, timestamp_ms: int
) -> str:
    """Name a download after the term, the keeper it would become, and its tier."""
    return f"{search_folder_name(search_term)}_{keeper_number}_{tier}_{timestamp_ms}.{extension}"


class AcquisitionLoop:
    """Resolve, download, measure, and gate candidates one at a time."""

    def __init__(
        self,
        config: HuntConfig,
        resolver: ResolutionStrategist,
        http: HttpClient,
        inspector: Callable[[Path], ImageMetadata] = inspect_image,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.resolver = resolver
        self.http = http
        self.inspector = inspector
        self.sleep = sleep
        self.clock = clock

    def output_dir(self, search_term: str) -> Path:
        return self.config.download_dir / CANDIDATES_SUBDIR / search_folder_name(search_term)

    async def acquire(
        self,
        candidates: Sequence[ImageCandidate],
        search_term: str,
        target: Optional[int] = None,
        standard: Optional[QualityStandard] = None,
    ) -> AcquisitionOutcome:
        target = self.config.max_results if target is None else target
        standard = standard or self.config.standard
        # Failing to create the storage root aborts the run.
        ensure_directory(self.config.download_dir)
        folder = self.output_dir(search_term)

        logger.info(
            "Starting hunt: targeting %d good images for %r from %d candidates",
            target,
            search_term,
            len(candidates),
        )
        logger.info(
            "Standards: %dx%d pixels, %.2fMP minimum",
            standard.min_width,
            standard.min_height,
            standard.min_megapixels,
        )

        outcome = AcquisitionOutcome(
            search_term=search_term,
            target=target,
            candidate_count=len(candidates),
            output_dir=folder,
        )
        started = time.perf_counter()
        while outcome.kept < target and outcome.processed < len(candidates):
            candidate = candidates[outcome.processed]
            result = await self._process(
                candidate, outcome.processed + 1, outcome.kept + 1, search_term, folder, standard
            )
            outcome.results.append(result)
            if result.kept:
                outcome.kept += 1
                logger.info(
                    "Keeper #%d: %s", outcome.kept, describe(result.metadata.width, result.metadata.height)
                )
            outcome.processed += 1
        outcome.elapsed_seconds = time.perf_counter() - started

        if outcome.complete:
            logger.info("Captured %d/%d target images", outcome.kept, target)
        else:
            logger.warning(
                "Hunt incomplete: only %d/%d images met standards (processed %d candidates)",
                outcome.kept,
                target,
                outcome.processed,
            )
        logger.info("Resolution breakdown: %s", outcome.tier_breakdown())
        return outcome

    async def _process(
        self,
        candidate: ImageCandidate,
        position: int,
        keeper_number: int,
        search_term: str,
        folder: Path,
        standard: QualityStandard,
    ) -> AcquisitionResult:
        resolved = None
        filepath: Optional[Path] = None
        try:
            if self.config.precheck_declared and not admit_declared(
                candidate.width, candidate.height, standard
            ):
                message = f"Declared size too small: {describe(candidate.width, candidate.height)}"
                logger.warning("Skipping candidate %d: %s", position, message)
                return AcquisitionResult(candidate, error=message)

            resolved = await self.resolver.resolve(candidate)
            if resolved.resolution_tier == TIER_FAILED:
                logger.warning("Skipping candidate %d: no valid URL", position)
                return AcquisitionResult(candidate, resolved, error="No valid image URL available")
            if resolved.resolution_tier == TIER_THUMBNAIL and not self.config.fallback_to_thumbnails:
                logger.warning("Skipping candidate %d: thumbnail rejected", position)
                return AcquisitionResult(
                    candidate, resolved, error="Thumbnail rejected - real images only"
                )

            url = resolved.final_image_url
            filename = build_filename(
                search_term,
                keeper_number,
                resolved.resolution_tier,
                image_extension(url),
                int(self.clock() * 1000),
            )
            logger.info(
                "Downloading candidate %d (targeting keeper #%d): %s",
                position,
                keeper_number,
                url[:80],
            )
            await self.sleep(self.config.delay_seconds)
            ensure_directory(folder)
            filepath = folder / filename
            write_stream(filepath, self.http.get_stream(url, timeout=self.config.download_timeout))

            metadata = self.inspector(filepath)
            if not admit(metadata.width, metadata.height, standard):
                delete_file(filepath)
                message = (
                    f"Downloaded image too small: {describe(metadata.width, metadata.height)}"
                )
                logger.warning(
                    "Deleting candidate %d: %s below %dx%d, %.2fMP",
                    position,
                    describe(metadata.width, metadata.height),
                    standard.min_width,
                    standard.min_height,
                    standard.min_megapixels,
                )
                return AcquisitionResult(candidate, resolved, metadata=metadata, error=message)

            return AcquisitionResult(
                candidate, resolved, filepath=filepath, metadata=metadata, success=True, kept=True
            )
        except HuntError as exc:
            logger.warning("Failed to process candidate %d: %s", position, exc)
            error = str(exc)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing candidate %d", position)
            error = str(exc) or exc.__class__.__name__

        if filepath is not None:
            delete_file(filepath)
        return AcquisitionResult(candidate, resolved, error=error)
