"""Step-based progress accumulation for backup and restore tasks."""
import threading
from typing import Callable, List, Optional

from ..core.exceptions import IllegalStateError, InvalidArgumentError, InvalidConfigurationError
from ..core.logging import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]

class ProgressAccumulator:
    """Turns step completions and in-step percentages into one overall percentage.

    Subscribers are called with the new value only when it changes. The
    counters are lock-guarded so a reporting thread may poll ``progress``
    while the task thread advances it.
    """

    def __init__(self, update_callback: Optional[ProgressCallback] = None):
        self._lock = threading.Lock()
        self._steps_count = 1
        self._steps_completed = 0
        self._step_progress = 0
        self._progress = 0
        self._callbacks: List[ProgressCallback] = []
        if update_callback:
            self.subscribe(update_callback)

    @property
    def progress(self) -> int:
        with self._lock:
            return self._progress

    @property
    def steps_count(self) -> int:
        with self._lock:
            return self._steps_count

    @property
    def steps_completed(self) -> int:
        with self._lock:
            return self._steps_completed

    def subscribe(self, callback: ProgressCallback) -> None:
        """Register a callback receiving every new progress value."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def set_steps_count(self, value: int) -> None:
        """Set the number of steps of the task and restart step counting.

        Raises:
            InvalidConfigurationError: If value is lower than 1
        """
        if value <= 0:
            raise InvalidConfigurationError(f"Steps count must be positive, got {value}")
        with self._lock:
            self._steps_count = value
            self._steps_completed = 0
            self._step_progress = 0
        logger.debug(f"Steps: {value}")

    def set_step_completed(self, increment: int = 1) -> None:
        """Mark ``increment`` steps as done.

        Single-step tasks report only through set_current_step_progress
        and set_progress, so this is a no-op for them.

        Raises:
            IllegalStateError: If all steps are already completed
        """
        with self._lock:
            if self._steps_count == 1:
                return
            if self._steps_completed == self._steps_count:
                raise IllegalStateError("All steps completed.")
            self._steps_completed = min(self._steps_count, self._steps_completed + increment)
            self._step_progress = 0
            value = 100 * self._steps_completed // self._steps_count
        self.set_progress(value)

    def set_current_step_progress(self, value: int) -> None:
        """Report the percentage reached inside the current step.

        Raises:
            InvalidArgumentError: If value is outside 0..100
            IllegalStateError: If all steps are already completed
        """
        if value < 0 or value > 100:
            raise InvalidArgumentError(f"Step progress must be within 0..100, got {value}")
        if value == 100:
            self.set_step_completed()
            return
        with self._lock:
            if self._steps_completed == self._steps_count:
                raise IllegalStateError("All steps completed.")
            # A step never reports less than it already did
            if value < self._step_progress:
                return
            self._step_progress = value
            overall = (100 * self._steps_completed + value) // self._steps_count
        self.set_progress(overall)

    def set_progress(self, value: int) -> None:
        """Set the overall percentage; subscribers fire only on change.

        Raises:
            InvalidArgumentError: If value is outside 0..100
        """
        if value < 0 or value > 100:
            raise InvalidArgumentError(f"Progress must be within 0..100, got {value}")
        with self._lock:
            if self._progress == value:
                return
            self._progress = value
        self._on_progress_changed(value)

    def _on_progress_changed(self, value: int) -> None:
        for callback in list(self._callbacks):
            callback(value)
