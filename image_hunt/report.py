"""Human-readable run statistics and analysis of previous downloads."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .acquisition import AcquisitionOutcome
from .errors import DecodeError
from .images import inspect_image
from .models import ImageMetadata

logger = logging.getLogger("image_hunt.report")

REPORT_FILENAME = "report.md"
IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tif", ".tiff"}


def _timestamp() -> str:
    return (
        dt.datetime.now(dt.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _cell(value: Optional[str]) -> str:
    return (value or "").replace("|", "\\|").replace("\n", " ")


def compose_report(outcome: AcquisitionOutcome) -> str:
    """Render a run as Markdown with front matter and a per-candidate table."""
    lines = ["---"]
    lines.append(f"search_term: {outcome.search_term}")
    lines.append(f"generated_at: {_timestamp()}")
    lines.append(f"target: {outcome.target}")
    lines.append(f"kept: {outcome.kept}")
    lines.append(f"processed: {outcome.processed}")
    lines.append(f"candidates: {outcome.candidate_count}")
    lines.append(f"status: {'complete' if outcome.complete else 'incomplete'}")
    lines.append(f"elapsed_seconds: {outcome.elapsed_seconds:.1f}")
    lines.append("---\n")

    lines.append(f"# Hunt report: {outcome.search_term}\n")
    if outcome.complete:
        lines.append(f"Captured {outcome.kept}/{outcome.target} target images.\n")
    else:
        lines.append(
            f"Incomplete: only {outcome.kept}/{outcome.target} images met the standard "
            f"after {outcome.processed} of {outcome.candidate_count} candidates.\n"
        )

    tiers = outcome.tier_breakdown()
    if tiers:
        lines.append("## Resolution breakdown\n")
        for tier, count in sorted(tiers.items(), key=lambda item: -item[1]):
            lines.append(f"- {tier}: {count}")
        lines.append("")

    methods = outcome.method_breakdown()
    if methods:
        lines.append("## Extraction methods\n")
        for method, count in sorted(methods.items(), key=lambda item: -item[1]):
            lines.append(f"- {method}: {count}")
        lines.append("")

    best = outcome.best_captures()
    if best:
        lines.append("## Best captures\n")
        for idx, result in enumerate(best, start=1):
            meta = result.metadata
            lines.append(
                f"{idx}. {result.filepath.name}: {meta.width}x{meta.height} "
                f"({meta.megapixels:.1f}MP) quality {meta.quality_score}%"
            )
        lines.append("")

    lines.append("## Candidates\n")
    lines.append("| # | method | tier | kept | size | detail |")
    lines.append("|---|--------|------|------|------|--------|")
    for idx, result in enumerate(outcome.results, start=1):
        size = (
            f"{result.metadata.width}x{result.metadata.height}" if result.metadata else ""
        )
        detail = result.filepath.name if result.kept and result.filepath else result.error
        lines.append(
            f"| {idx} | {result.candidate.extraction_method} | {result.resolution_tier or ''} "
            f"| {'yes' if result.kept else 'no'} | {size} | {_cell(detail)} |"
        )
    return "\n".join(lines) + "\n"


def write_report(outcome: AcquisitionOutcome, directory: Optional[Path] = None) -> Path:
    target_dir = directory or outcome.output_dir
    if target_dir is None:
        raise ValueError("No directory available for the hunt report")
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / REPORT_FILENAME
    path.write_text(compose_report(outcome), encoding="utf-8")
    logger.info("Saved report to %s", path)
    return path


@dataclass
class AnalysedImage:
    path: Path
    metadata: ImageMetadata


def analyse_directory(root: Path) -> List[AnalysedImage]:
    """Measure every image under ``root``; unreadable files are logged and skipped."""
    analysed: List[AnalysedImage] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        try:
            analysed.append(AnalysedImage(path, inspect_image(path)))
        except DecodeError as exc:
            logger.warning("Skipping %s: %s", path, exc)
    return analysed


def compose_analysis(root: Path, images: List[AnalysedImage]) -> str:
    if not images:
        return f"No images found under {root}\n"
    total_bytes = sum(img.metadata.byte_size for img in images)
    avg_mp = sum(img.metadata.megapixels for img in images) / len(images)
    avg_quality = sum(img.metadata.quality_score for img in images) / len(images)
    lines = [
        f"# Downloads under {root}\n",
        f"- images: {len(images)}",
        f"- total size: {total_bytes / 1_048_576:.1f} MiB",
        f"- average resolution: {avg_mp:.2f}MP",
        f"- average quality: {avg_quality:.0f}%",
        "",
        "| file | size | format | quality |",
        "|------|------|--------|---------|",
    ]
    ranked = sorted(images, key=lambda img: img.metadata.quality_score, reverse=True)
    for img in ranked:
        meta = img.metadata
        lines.append(
            f"| {_cell(str(img.path.relative_to(root)))} | {meta.width}x{meta.height} "
            f"| {meta.format} | {meta.quality_score}% |"
        )
    return "\n".join(lines) + "\n"
