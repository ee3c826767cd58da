"""
Tests for concurrent batch conversion.

Tests cover:
- One result per (item, format) pair
- Progress reporting
- Naming of filtered outputs
- Failures recorded without stopping the batch
- Distinct output paths (repeated formats, shared names, shared fallbacks)
- Completion callbacks on submitted futures
- Lazy worker pool
"""

import threading

import pytest

from IM_Libs.ConversionLib.batch_converter import (
    BatchConverter,
    BatchItem,
    BatchProgress,
    BatchReport,
    unique_formats,
    unique_items,
)
from IM_Libs.ConversionLib.conversion_service import ConversionRequest, ConversionService
from IM_Libs.ConversionLib.formats import ImageFormat
from IM_Libs.errors import UnsupportedFormatError
from IM_Libs.ImageEditingLib.filter_catalog import apply_filter
from IM_Libs.ImageEditingLib.raster import Raster, load_raster


def _always_fails(raster, path, config):
    raise RuntimeError("encoder unavailable")


@pytest.fixture
def items(gradient_raster):
    return [
        BatchItem(raster=gradient_raster, base_name="first"),
        BatchItem(raster=Raster.blank(5, 5, (1.0, 0.0, 0.0, 1.0)), base_name="second"),
    ]


class TestBatchItem:

    def test_output_name(self, gradient_raster):
        assert BatchItem(gradient_raster, "photo").output_name == "photo"
        assert BatchItem(gradient_raster, "photo", filtered=True).output_name == "photo_filtered"


class TestBatchProgress:

    def test_fraction(self):
        assert BatchProgress(completed=1, total=4, succeeded=1, failed=0).fraction == 0.25
        assert BatchProgress(completed=0, total=0, succeeded=0, failed=0).fraction == 1.0


class TestConvertAll:

    def test_every_pair_converted(self, items, output_dir):
        with BatchConverter(max_workers=4) as batch:
            report = batch.convert_all(items, ["PNG", "TIFF", "PDF"], output_dir)

        assert isinstance(report, BatchReport)
        assert report.succeeded == 6
        assert report.failed == 0
        names = sorted(p.name for p in output_dir.iterdir())
        assert names == [
            "first.pdf", "first.png", "first.tiff",
            "second.pdf", "second.png", "second.tiff",
        ]

    def test_progress_called_per_job(self, items, output_dir):
        seen = []

        with BatchConverter(max_workers=2) as batch:
            batch.convert_all(items, ["PNG", "GIF"], output_dir, progress=seen.append)

        assert [p.completed for p in seen] == [1, 2, 3, 4]
        assert all(p.total == 4 for p in seen)
        assert seen[-1].succeeded == 4
        assert seen[-1].fraction == 1.0

    def test_filtered_items_get_suffix(self, gradient_raster, output_dir):
        item = BatchItem(
            raster=apply_filter("Sepia", gradient_raster),
            base_name="photo",
            filtered=True,
        )

        with BatchConverter() as batch:
            report = batch.convert_all([item], ["JPG"], output_dir)

        assert [r.path.name for r in report.results] == ["photo_filtered.jpg"]

    def test_fallbacks_reported(self, translucent_raster, output_dir):
        item = BatchItem(raster=translucent_raster, base_name="glass")

        with BatchConverter() as batch:
            report = batch.convert_all([item], ["JPG", "PNG"], output_dir)

        assert [r.requested_format for r in report.fallbacks] == [ImageFormat.JPG]
        # the JPG fallback and the requested PNG are the same file
        assert len(report.results) == 2
        assert report.succeeded == 1
        assert report.paths == [output_dir / "glass.png"]
        assert report.shared_paths == [output_dir / "glass.png"]
        assert [p.name for p in output_dir.iterdir()] == ["glass.png"]

    def test_duplicate_names_are_made_unique(self, output_dir):
        red = Raster.blank(4, 4, (1.0, 0.0, 0.0, 1.0))
        blue = Raster.blank(4, 4, (0.0, 0.0, 1.0, 1.0))
        items = [BatchItem(red, "photo"), BatchItem(blue, "photo")]

        with BatchConverter() as batch:
            report = batch.convert_all(items, ["PNG"], output_dir)

        assert report.succeeded == 2
        assert report.shared_paths == []
        assert sorted(p.name for p in output_dir.iterdir()) == ["photo.png", "photo_1.png"]
        assert load_raster(output_dir / "photo_1.png").pixel(0, 0) == (0.0, 0.0, 1.0, 1.0)

    def test_repeated_format_converted_once(self, gradient_raster, output_dir):
        seen = []

        with BatchConverter() as batch:
            report = batch.convert_all(
                [BatchItem(gradient_raster, "photo")], ["png", "PNG", " Png "], output_dir,
                progress=seen.append,
            )

        assert len(report.results) == 1
        assert report.succeeded == 1
        assert seen[-1].total == 1

    def test_failures_do_not_stop_batch(self, items, output_dir):
        service = ConversionService(encoders={
            ImageFormat.GIF: _always_fails,
            ImageFormat.PNG: _always_fails,
        })

        with BatchConverter(service=service, max_workers=2) as batch:
            report = batch.convert_all(items, ["GIF", "TIFF"], output_dir)

        assert report.succeeded == 2
        assert report.failed == 2
        assert set(report.failures) == {("first", "GIF"), ("second", "GIF")}
        assert all(isinstance(e, OSError) for e in report.failures.values())

    def test_unsupported_format_rejected_up_front(self, items, output_dir):
        with BatchConverter() as batch:
            with pytest.raises(UnsupportedFormatError):
                batch.convert_all(items, ["PNG", "BMP"], output_dir)

        assert not output_dir.exists()

    def test_empty_batch(self, output_dir):
        with BatchConverter() as batch:
            report = batch.convert_all([], ["PNG"], output_dir)

        assert report.succeeded == 0
        assert report.failed == 0


class TestSubmit:

    def test_future_resolves_to_result(self, gradient_raster, output_dir):
        request = ConversionRequest(gradient_raster, "SVG", output_dir, "vector")

        with BatchConverter() as batch:
            result = batch.submit(request).result(timeout=30)

        assert result.path == output_dir / "vector.svg"
        assert result.path.exists()

    def test_on_complete_called(self, gradient_raster, output_dir):
        done = threading.Event()
        finished = []

        def on_complete(future):
            finished.append(future)
            done.set()

        request = ConversionRequest(gradient_raster, "PNG", output_dir, "callback")
        with BatchConverter() as batch:
            future = batch.submit(request, on_complete=on_complete)

        assert done.wait(timeout=30)
        assert finished == [future]
        assert future.result().path.name == "callback.png"

    def test_error_surfaces_through_future(self, gradient_raster, output_dir):
        request = ConversionRequest(gradient_raster, "PNG", output_dir, "bad/name")

        with BatchConverter() as batch:
            future = batch.submit(request)

        with pytest.raises(ValueError):
            future.result(timeout=30)


class TestUniqueness:

    def test_unique_formats_keeps_first_order(self):
        assert unique_formats(["pdf", "PNG", "PDF", "png"]) == [ImageFormat.PDF, ImageFormat.PNG]

    def test_unique_formats_rejects_unsupported(self):
        with pytest.raises(UnsupportedFormatError):
            unique_formats(["PNG", "BMP"])

    def test_unique_items_skips_taken_names(self, gradient_raster):
        items = [
            BatchItem(gradient_raster, "photo"),
            BatchItem(gradient_raster, "photo_1"),
            BatchItem(gradient_raster, "photo"),
        ]

        names = [item.output_name for item in unique_items(items)]

        assert names == ["photo", "photo_1", "photo_2"]

    def test_unique_items_filtered_names(self, gradient_raster):
        items = [
            BatchItem(gradient_raster, "photo", filtered=True),
            BatchItem(gradient_raster, "photo", filtered=True),
            BatchItem(gradient_raster, "photo"),
        ]

        names = [item.output_name for item in unique_items(items)]

        assert names == ["photo_filtered", "photo_1_filtered", "photo"]


class TestExecutorLifecycle:

    def test_pool_started_on_first_submit(self, gradient_raster, output_dir):
        batch = BatchConverter()
        assert batch._executor is None

        batch.submit(ConversionRequest(gradient_raster, "PNG", output_dir, "lazy")).result(timeout=30)
        assert batch._executor is not None

        batch.shutdown()
        assert batch._executor is None

    def test_shutdown_without_submit(self):
        BatchConverter().shutdown()

    def test_usable_after_shutdown(self, gradient_raster, output_dir):
        batch = BatchConverter()
        batch.shutdown()

        with batch:
            result = batch.submit(ConversionRequest(gradient_raster, "GIF", output_dir, "again")).result(timeout=30)

        assert result.path.exists()

    def test_rejects_non_positive_workers(self):
        with pytest.raises(ValueError):
            BatchConverter(max_workers=0)
