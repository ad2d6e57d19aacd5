"""Per-page panel detection across a document.

Pages are independent, so each one is detected on its own worker. A page
that fails or times out is reported with an empty panel list and never
stops the others.

A timed-out page is abandoned, not killed: its worker thread runs to
completion and the interpreter still joins it at exit. Long-running callers
are unaffected; the CLI exits hard when it has abandoned pages.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from numpy.typing import NDArray

from .config import DetectionParameters
from .detector import PanelDetector, Rect, initialize
from .document import Document
from .errors import PanelFlowError

log = logging.getLogger("panelflow.batch")


@dataclass
class DetectionTask:
    """A detection task to be processed."""
    page_number: int
    image: NDArray


@dataclass
class DetectionResult:
    """Result of a detection task."""
    page_number: int
    panels: List[Rect] = field(default_factory=list)
    success: bool = True
    error_message: Optional[str] = None
    elapsed_ms: float = 0.0
    timed_out: bool = False


def _default_workers() -> int:
    return max(1, min(8, os.cpu_count() or 1))


def _run_task(detector: PanelDetector, task: DetectionTask, params: DetectionParameters) -> DetectionResult:
    start_time = time.perf_counter()
    try:
        panels = detector.detect(task.image, params)
    except Exception as e:
        if isinstance(e, PanelFlowError):
            log.warning("Page %d: detection failed: %s", task.page_number, e)
        else:
            log.exception("Page %d: unexpected detection error", task.page_number)
        return DetectionResult(
            page_number=task.page_number,
            panels=[],
            success=False,
            error_message=f"{type(e).__name__}: {e}",
            elapsed_ms=(time.perf_counter() - start_time) * 1000,
        )
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    log.debug("Page %d: %d panels in %.1f ms", task.page_number, len(panels), elapsed_ms)
    return DetectionResult(page_number=task.page_number, panels=panels, elapsed_ms=elapsed_ms)


def detect_pages(
    tasks: Iterable[DetectionTask],
    params: Optional[DetectionParameters] = None,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    on_result: Optional[Callable[[DetectionResult], None]] = None,
) -> List[DetectionResult]:
    """Detect panels on every page, one worker per page.

    Args:
        tasks: Pages to process
        params: Detection parameters shared by all pages
        max_workers: Pool size; defaults to the CPU count (capped at 8)
        timeout: Seconds to wait for each page before giving up on it
        on_result: Called with each result as results are collected

    Returns:
        One result per task, in task order
    """
    initialize()
    params = (params or DetectionParameters()).validate()
    detector = PanelDetector(params)
    tasks = list(tasks)
    results: List[DetectionResult] = []

    executor = ThreadPoolExecutor(
        max_workers=max_workers or _default_workers(),
        thread_name_prefix="panel_detect",
    )
    try:
        futures = [executor.submit(_run_task, detector, task, params) for task in tasks]
        for task, future in zip(tasks, futures):
            try:
                result = future.result(timeout=timeout)
            except FutureTimeout:
                future.cancel()
                log.warning("Page %d: detection timed out after %ss", task.page_number, timeout)
                result = DetectionResult(
                    page_number=task.page_number,
                    success=False,
                    error_message=f"Timed out after {timeout}s",
                    timed_out=True,
                )
            if on_result is not None:
                on_result(result)
            results.append(result)
    finally:
        # Abandoned pages keep running in their thread; do not block on them
        executor.shutdown(wait=False, cancel_futures=True)

    failed = sum(1 for r in results if not r.success)
    log.info("Detected panels on %d pages (%d failed)", len(results), failed)
    return results


def detect_document(
    document: Document,
    params: Optional[DetectionParameters] = None,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
) -> List[DetectionResult]:
    """Detect every page of a document and store identified panels on it.

    Failed pages get an empty panel list.
    """
    tasks = [DetectionTask(page.page_number, page.image) for page in document]
    results = detect_pages(tasks, params, max_workers=max_workers, timeout=timeout)
    for result in results:
        document.page(result.page_number).set_detected_panels(result.panels)
    return results
