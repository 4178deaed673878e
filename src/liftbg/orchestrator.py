"""
Run the background removal pipeline off the caller's thread.

``ImageProcessor`` owns a small state machine::

    Idle -> Processing -> Finished(result) | Failed(error)
    Finished | Failed -> Idle                (reset() only)

The worker thread never touches the state. It hands the terminal state over a
queue and the owning thread applies it in ``dispatch_pending`` or ``wait``, so
observers only ever see fully formed states.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

from .access import ScopedResource, as_resource
from .codec import save_image
from .errors import LiftError, ProcessorBusyError
from .pipeline import BackgroundRemover, ProcessingResult
from .raster import RasterImage

__all__ = [
    "Idle",
    "Processing",
    "Finished",
    "Failed",
    "Status",
    "ImageProcessor",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Processing:
    source: Path


@dataclass(frozen=True)
class Finished:
    result: ProcessingResult

    @property
    def original(self) -> RasterImage:
        return self.result.original

    @property
    def processed(self) -> RasterImage:
        return self.result.processed


@dataclass(frozen=True)
class Failed:
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


Status = Union[Idle, Processing, Finished, Failed]
Listener = Callable[[Status], None]


class ImageProcessor:
    def __init__(self, remover: Optional[BackgroundRemover] = None) -> None:
        self.remover = remover or BackgroundRemover()
        self._status: Status = Idle()
        self._listeners: List[Listener] = []
        self._outbox: "queue.Queue[Status]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    @property
    def status(self) -> Status:
        return self._status

    @property
    def busy(self) -> bool:
        return isinstance(self._status, Processing)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, status: Status) -> None:
        self._status = status
        logger.debug("Status -> %s", type(status).__name__)
        for listener in list(self._listeners):
            listener(status)

    def process(self, source: Union[str, Path, ScopedResource]) -> None:
        """
        Start processing ``source`` in the background and return immediately.

        Raises ProcessorBusyError if a run is already in flight; the running
        job is left untouched.
        """
        if self.busy:
            raise ProcessorBusyError("An image is already being processed.")

        resource = as_resource(source)
        self._publish(Processing(resource.path))
        self._worker = threading.Thread(
            target=self._run,
            args=(resource,),
            name="liftbg-worker",
            daemon=True,
        )
        self._worker.start()

    def _run(self, resource: ScopedResource) -> None:
        try:
            result = self.remover.run(resource)
        except LiftError as exc:
            logger.warning("Processing %s failed: %s", resource.path, exc)
            self._outbox.put(Failed(exc))
        except Exception as exc:
            logger.exception("Unexpected error while processing %s", resource.path)
            self._outbox.put(Failed(exc))
        else:
            self._outbox.put(Finished(result))

    def dispatch_pending(self) -> int:
        """
        Apply every state handed over by the worker. Call from the owning thread.
        """
        applied = 0
        while True:
            try:
                status = self._outbox.get_nowait()
            except queue.Empty:
                return applied
            self._publish(status)
            applied += 1

    def wait(self, timeout: Optional[float] = None) -> Status:
        """
        Block until the in-flight run settles, then apply its state.

        Returns the current status; still ``Processing`` if ``timeout`` expired.
        """
        if self.busy:
            try:
                status = self._outbox.get(timeout=timeout)
            except queue.Empty:
                return self._status
            self._publish(status)
            if self._worker is not None:
                self._worker.join()
                self._worker = None
        self.dispatch_pending()
        return self._status

    def reset(self) -> None:
        if self.busy:
            raise ProcessorBusyError("Cannot reset while an image is being processed.")
        self._publish(Idle())

    def save(self, image: RasterImage, path: Union[str, Path]) -> bool:
        """
        Write ``image`` as PNG. Failures are logged and leave the status alone.
        """
        try:
            save_image(image, path)
        except LiftError as exc:
            logger.error("Saving image failed: %s", exc)
            return False
        return True
