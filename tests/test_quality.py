"""Tests for the quality gate, image inspection, and quality scoring."""

import random

import pytest
from PIL import Image

from image_hunt.config import QualityStandard
from image_hunt.errors import DecodeError
from image_hunt.fetch import pick_agent
from image_hunt.images import assess_quality, inspect_image
from image_hunt.quality import admit, admit_declared

STANDARD = QualityStandard(min_width=400, min_height=400, min_megapixels=0.4)


@pytest.mark.parametrize(
    "width,height,expected",
    [
        (800, 600, True),
        (400, 1000, True),
        (399, 2000, False),
        (2000, 399, False),
        (600, 600, False),  # 0.36MP
        (640, 640, True),
        (500, 500, False),  # 0.25MP
        (300, 300, False),
    ],
)
def test_admit(width, height, expected):
    assert admit(width, height, STANDARD) is expected


def test_admit_is_monotonic():
    sizes = range(0, 1400, 70)
    for w in sizes:
        for h in sizes:
            if not admit(w, h, STANDARD):
                continue
            assert admit(w + 1, h, STANDARD)
            assert admit(w, h + 1, STANDARD)
            assert admit(w + 350, h + 700, STANDARD)


def test_declared_check_admits_unknown_sizes():
    assert admit_declared(0, 0, STANDARD)
    assert admit_declared(800, 0, STANDARD)
    assert not admit_declared(300, 300, STANDARD)


def test_inspect_png(tmp_path):
    path = tmp_path / "pic.png"
    Image.new("RGB", (800, 600), color="white").save(path)

    meta = inspect_image(path)

    assert (meta.width, meta.height) == (800, 600)
    assert meta.format == "png"
    assert meta.byte_size == path.stat().st_size
    assert meta.megapixels == pytest.approx(0.48)
    assert 0 < meta.quality_score <= 100


def test_inspect_jpeg_reports_jpg(tmp_path):
    path = tmp_path / "pic.jpeg"
    Image.new("RGB", (64, 48)).save(path, format="JPEG")
    assert inspect_image(path).format == "jpg"


def test_inspect_rejects_non_images(tmp_path):
    path = tmp_path / "page.jpg"
    path.write_text("<html>blocked</html>")
    with pytest.raises(DecodeError):
        inspect_image(path)


def test_inspect_missing_file(tmp_path):
    with pytest.raises(DecodeError):
        inspect_image(tmp_path / "missing.png")


class TestAssessQuality:
    def test_top_score_for_large_lossless(self):
        assert assess_quality(2000, 1500, "png", 2000 * 1500 * 4) == 100

    def test_format_ranking(self):
        scores = [assess_quality(1000, 1000, fmt, 500_000) for fmt in ("png", "jpg", "webp", "gif")]
        assert scores == sorted(scores, reverse=True)
        assert len(set(scores)) == 4

    def test_monotonic_in_pixels_and_bytes(self):
        assert assess_quality(800, 600, "jpg", 100_000) <= assess_quality(1600, 1200, "jpg", 400_000)
        assert assess_quality(1000, 1000, "jpg", 1_000_000) <= assess_quality(1000, 1000, "jpg", 4_000_000)

    def test_empty_image(self):
        assert assess_quality(0, 0, "png", 10) == 0


def test_pick_agent_uses_random_source():
    pool = ("a", "b", "c")
    first = [pick_agent(pool, random.Random(7)) for _ in range(3)]
    assert len(set(first)) == 1
    assert all(agent in pool for agent in first)
    with pytest.raises(ValueError):
        pick_agent((), random.Random())
