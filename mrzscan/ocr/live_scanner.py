"""Live viewfinder scanning with a single in-flight pipeline run.

Frames are handed over from the camera's delivery thread and processed on
one worker thread. While a run is in progress newer frames are dropped
instead of queued, which bounds latency when OCR is slower than the frame
rate.
"""

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from mrzscan.camera.frames import Frame, TorchControl
from mrzscan.extraction.mrz_lines import MrzResult
from mrzscan.utils.exceptions import OcrEngineFailureError, PipelineClosedError
from mrzscan.utils.logger import get_logger

from .mrz_processor import MrzProcessor

logger = get_logger(__name__)


class LiveFrameScanner:
    """Schedules live frames through an :class:`MrzProcessor`.

    Args:
        processor: Pipeline to run each accepted frame through.
        on_result: Called with every complete MRZ, on the worker thread.
        on_error: Called once when OCR keeps failing for
            ``failure_threshold`` consecutive frames.
        torch: Camera collaborator used by :meth:`set_torch`.
        failure_threshold: Consecutive engine failures before ``on_error``.
            Defaults to the processor's capture configuration.
    """

    def __init__(
        self,
        processor: MrzProcessor,
        on_result: Callable[[MrzResult], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        torch: TorchControl | None = None,
        failure_threshold: int | None = None,
    ) -> None:
        self.processor = processor
        self.on_result = on_result
        self.on_error = on_error
        self.torch = torch
        self.failure_threshold = (
            failure_threshold or processor.config.capture.failure_threshold
        )
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="mrz-frame"
        )
        self._lock = threading.RLock()
        self._stopped = threading.Event()
        self._in_flight: Future | None = None
        self._worker_ident: int | None = None
        self._consecutive_failures = 0
        self._error_reported = False
        self.frames_submitted = 0
        self.frames_dropped = 0
        self.results_emitted = 0

    @property
    def is_running(self) -> bool:
        return not self._stopped.is_set()

    def submit(self, frame: Frame) -> Future | None:
        """Start a pipeline run for a frame unless one is already running.

        Args:
            frame: Raw camera frame.

        Returns:
            Future resolving to the complete MRZ or ``None``; ``None``
            instead of a future when the frame was dropped.

        Raises:
            PipelineClosedError: If the scanner has been stopped.
        """
        with self._lock:
            if self._stopped.is_set():
                raise PipelineClosedError("Scanner has been stopped")

            self.frames_submitted += 1
            if self._in_flight is not None and not self._in_flight.done():
                self.frames_dropped += 1
                logger.debug("Pipeline busy, dropping frame")
                return None

            future = self._executor.submit(self._run, frame)
            self._in_flight = future
            return future

    def _run(self, frame: Frame) -> MrzResult | None:
        self._worker_ident = threading.get_ident()
        try:
            outcome = self.processor.scan_frame(frame, cancelled=self._stopped.is_set)
        except Exception:
            logger.exception("Live frame run failed")
            return None

        # Held through delivery so stop() cannot return mid-callback.
        with self._lock:
            if outcome.cancelled or self._stopped.is_set():
                return None

            self._track_failures(outcome.error_kind, outcome.error_message)
            if not outcome.found:
                return None

            self.results_emitted += 1
            if self.on_result is not None:
                try:
                    self.on_result(outcome.result)
                except Exception:
                    logger.exception("on_result callback failed")
            return outcome.result

    def _track_failures(self, error_kind: str | None, message: str | None) -> None:
        if error_kind != OcrEngineFailureError.kind:
            self._consecutive_failures = 0
            self._error_reported = False
            return

        self._consecutive_failures += 1
        if (
            self._consecutive_failures >= self.failure_threshold
            and not self._error_reported
        ):
            self._error_reported = True
            logger.error(
                "OCR failed on %d consecutive frames: %s",
                self._consecutive_failures,
                message,
            )
            if self.on_error is not None:
                try:
                    self.on_error(message or "OCR engine failure")
                except Exception:
                    logger.exception("on_error callback failed")

    def set_torch(self, on: bool) -> None:
        """Switch the camera flashlight through the injected collaborator."""
        if self.torch is None:
            logger.warning("No torch control available")
            return
        self.torch.set_torch(on)

    def stop(self, wait: bool = True) -> None:
        """Cancel in-flight work and release the worker thread.

        No result is delivered after this returns. Callbacks may call it
        from the worker thread; the worker is then released without
        waiting on itself. The processor itself is left open; the owner
        closes it.
        """
        with self._lock:
            if self._stopped.is_set():
                return
            self._stopped.set()
        on_worker = threading.get_ident() == self._worker_ident
        self._executor.shutdown(wait=wait and not on_worker, cancel_futures=True)
        logger.info(
            "Live scanner stopped (%d submitted, %d dropped, %d results)",
            self.frames_submitted,
            self.frames_dropped,
            self.results_emitted,
        )

    def __enter__(self) -> "LiveFrameScanner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
