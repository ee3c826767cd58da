"""
Batch conversion on a worker pool.

The conversion service is synchronous. This module runs it for many
(image, format) pairs on a ThreadPoolExecutor, handing back a Future per
conversion as its completion signal and reporting progress as jobs finish.

Output paths are kept distinct: repeated format tokens are dropped and
items sharing an output name get a numeric suffix ("photo", "photo_1").
A PNG fallback can still land on the same path as a requested PNG of the
same item; both encode the same raster with the same encoder, and the
report counts that path once and lists it in ``shared_paths``.

Started jobs cannot be cancelled; they run to completion or failure.

Classes:
    BatchItem: One image queued for conversion
    BatchProgress: Running counters reported after every job
    BatchReport: Outcome of a whole batch
    BatchConverter: Submits conversions to a thread pool
"""

from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging
import threading

from IM_Libs.constants import FILTERED_SUFFIX
from IM_Libs.ConversionLib.conversion_service import (
    ConversionRequest,
    ConversionResult,
    ConversionService,
)
from IM_Libs.ConversionLib.formats import ImageFormat, parse_format
from IM_Libs.ImageEditingLib.raster import Raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItem:
    """An image to convert.

    Attributes:
        raster: Pixels to encode
        base_name: Output file name without extension
        filtered: True if raster differs from the decoded original; the
                  output name then gets a "_filtered" suffix
    """
    raster: Raster
    base_name: str
    filtered: bool = False

    @property
    def output_name(self) -> str:
        if self.filtered:
            return f"{self.base_name}{FILTERED_SUFFIX}"
        return self.base_name


@dataclass(frozen=True)
class BatchProgress:
    completed: int
    total: int
    succeeded: int
    failed: int

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0


@dataclass
class BatchReport:
    """Results and failures of a batch, failures keyed by (output name, format name).

    ``succeeded`` counts distinct files written, not jobs.
    """
    results: List[ConversionResult] = field(default_factory=list)
    failures: Dict[Tuple[str, str], Exception] = field(default_factory=dict)

    @property
    def paths(self) -> List[Path]:
        """Distinct written paths in completion order."""
        return list(dict.fromkeys(result.path for result in self.results))

    @property
    def shared_paths(self) -> List[Path]:
        """Paths written by more than one job."""
        counts = Counter(result.path for result in self.results)
        return [path for path in self.paths if counts[path] > 1]

    @property
    def succeeded(self) -> int:
        return len(self.paths)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def fallbacks(self) -> List[ConversionResult]:
        return [result for result in self.results if result.fell_back]


def unique_formats(formats: Sequence[Union[str, ImageFormat]]) -> List[ImageFormat]:
    """
    Parse format tokens and drop repeats, keeping first-seen order.

    Raises:
        UnsupportedFormatError: If any token is not supported
    """
    parsed = [parse_format(token) for token in formats]
    return list(dict.fromkeys(parsed))


def unique_items(items: Iterable[BatchItem]) -> List[BatchItem]:
    """
    Rename items whose output names collide.

    The first item keeps its name; later ones get "_1", "_2", ... appended to
    their base name, skipping names already taken by other items.
    """
    items = list(items)
    taken = {item.output_name for item in items}
    seen = set()
    renamed: List[BatchItem] = []

    for item in items:
        if item.output_name in seen:
            index = 1
            candidate = replace(item, base_name=f"{item.base_name}_{index}")
            while candidate.output_name in taken:
                index += 1
                candidate = replace(item, base_name=f"{item.base_name}_{index}")
            logger.info(f"Output name '{item.output_name}' already used; writing '{candidate.output_name}'")
            item = candidate
            taken.add(item.output_name)
        seen.add(item.output_name)
        renamed.append(item)

    return renamed


class BatchConverter:
    """
    Runs conversions concurrently on a thread pool.

    The pool is started by the first submit and released by shutdown(), or
    on leaving a ``with`` block.

    Example:
        >>> with BatchConverter(max_workers=4) as batch:
        ...     report = batch.convert_all(items, ["PNG", "PDF"], "out")
        >>> report.succeeded
        6
    """

    def __init__(
        self,
        service: Optional[ConversionService] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            service: Conversion service to run (default: ConversionService())
            max_workers: Maximum number of threads (default: None = executor default)

        Raises:
            ValueError: If max_workers is less than 1
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.service = service or ConversionService()
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def __enter__(self) -> "BatchConverter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="im-convert",
                )
            return self._executor

    def shutdown(self, wait: bool = True) -> None:
        """Release the worker threads. A later submit starts a new pool."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def submit(
        self,
        request: ConversionRequest,
        on_complete: Optional[Callable[[Future], None]] = None,
    ) -> Future:
        """
        Queue one conversion.

        Args:
            request: The conversion to perform
            on_complete: Called with the finished Future (success or error)

        Returns:
            Future resolving to the ConversionResult
        """
        future = self._get_executor().submit(self.service.convert_request, request)
        if on_complete is not None:
            future.add_done_callback(on_complete)
        return future

    def convert_all(
        self,
        items: Iterable[BatchItem],
        formats: Sequence[str],
        output_dir: Union[str, Path],
        progress: Optional[Callable[[BatchProgress], None]] = None,
    ) -> BatchReport:
        """
        Convert every item into every format.

        Individual failures are recorded in the report instead of raised,
        so one bad job does not stop the batch.

        Args:
            items: Images to convert; colliding output names are renamed
            formats: Format tokens; all are validated before any job starts
                     and repeats are converted once
            output_dir: Destination directory
            progress: Called after each job with the running counters

        Returns:
            BatchReport with written files and failures

        Raises:
            UnsupportedFormatError: If any format token is not supported
        """
        image_formats = unique_formats(formats)

        output_dir = Path(output_dir)
        items = unique_items(items)
        total = len(items) * len(image_formats)
        report = BatchReport()

        futures: Dict[Future, Tuple[str, str]] = {}
        for item in items:
            for image_format in image_formats:
                request = ConversionRequest(
                    raster=item.raster,
                    target_format=image_format.name,
                    output_dir=output_dir,
                    base_name=item.output_name,
                )
                futures[self.submit(request)] = (item.output_name, image_format.name)

        completed = 0
        for future in as_completed(futures):
            key = futures[future]
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"Conversion of '{key[0]}' to {key[1]} failed: {e}")
                report.failures[key] = e
            else:
                report.results.append(result)

            completed += 1
            if progress is not None:
                progress(BatchProgress(
                    completed=completed,
                    total=total,
                    succeeded=report.succeeded,
                    failed=report.failed,
                ))

        for path in report.shared_paths:
            logger.warning(f"{path} was written by more than one job")

        logger.info(
            f"Batch finished: {report.succeeded} files written "
            f"({len(report.fallbacks)} via fallback), {report.failed} failed"
        )
        return report
