"""
Shared Radar State
Single source of truth read by the renderer and written by the poller and the
input handler. Every access takes the lock exactly once.
"""

import copy
import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, NamedTuple, Optional

from adsb_data import Position, Snapshot
from errors import LockFailure

logger = logging.getLogger(__name__)

# Nautical miles per degree of latitude.
# TODO: use cos(latitude) for longitude instead of a flat value
DISTANCE_PER_DEGREE = 60.0

# Terminal cells are roughly twice as tall as they are wide
CHAR_ASPECT_RATIO = 2.0


class Lifecycle(Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class RadarConfig:
    """Live view settings; the input handler is the only writer"""
    origin: Position
    radius: float = 50.0
    poll_interval: float = 1.0
    frame_interval: float = 0.25
    input_interval: float = 0.1
    terminal_cols: int = 80
    terminal_rows: int = 24
    label_label_force: float = 4.0
    label_point_force: float = 4.0
    label_snap_radius: float = 2.0
    history_capacity: int = 20
    request_timeout: Optional[float] = None
    distance_per_degree: float = DISTANCE_PER_DEGREE
    char_aspect_ratio: float = CHAR_ASPECT_RATIO

    @property
    def effective_timeout(self) -> float:
        if self.request_timeout is None:
            return self.poll_interval
        return self.request_timeout


class RadarView(NamedTuple):
    """Consistent copy of everything a frame needs"""
    snapshot: Snapshot
    config: RadarConfig
    start_origin: Position
    lifecycle: Lifecycle


class RadarState:
    """Current snapshot, rolling history, lifecycle and config behind one lock"""

    def __init__(self, config: RadarConfig, snapshot: Optional[Snapshot] = None):
        if config.history_capacity < 1:
            raise ValueError("history_capacity must be at least 1")
        self._lock = threading.Lock()
        self._config = config
        self._start_origin = config.origin
        self._snapshot = snapshot or Snapshot()
        self._history = deque(maxlen=config.history_capacity)
        self._lifecycle = Lifecycle.RUNNING
        self._poisoned: Optional[BaseException] = None

    def _check(self):
        # Caller holds the lock
        if self._poisoned is not None:
            raise LockFailure("Radar state was poisoned by a failed update") from self._poisoned

    def view(self) -> RadarView:
        with self._lock:
            self._check()
            return RadarView(self._snapshot, copy.copy(self._config),
                             self._start_origin, self._lifecycle)

    def config_copy(self) -> RadarConfig:
        with self._lock:
            self._check()
            return copy.copy(self._config)

    @property
    def snapshot(self) -> Snapshot:
        with self._lock:
            self._check()
            return self._snapshot

    @property
    def history(self) -> List[Snapshot]:
        """Oldest first"""
        with self._lock:
            self._check()
            return list(self._history)

    @property
    def start_origin(self) -> Position:
        return self._start_origin

    @property
    def lifecycle(self) -> Lifecycle:
        with self._lock:
            self._check()
            return self._lifecycle

    def is_running(self) -> bool:
        return self.lifecycle is Lifecycle.RUNNING

    def enqueue(self, snapshot: Snapshot):
        """Append to the rolling history, evicting the oldest entry when full"""
        with self._lock:
            self._check()
            self._history.append(snapshot)

    def publish(self, snapshot: Snapshot) -> bool:
        """
        Replace the current snapshot and record it in the history.

        Returns False without touching anything once shutdown has started.
        """
        with self._lock:
            self._check()
            if self._lifecycle is not Lifecycle.RUNNING:
                return False
            self._snapshot = snapshot
            self._history.append(snapshot)
            return True

    def update_config(self, mutator: Callable[[RadarConfig], None]) -> bool:
        """
        Apply mutator to the live config inside a single critical section.

        Returns False without calling mutator once shutdown has started.

        Raises:
            LockFailure: mutator raised; the state is poisoned from now on
        """
        with self._lock:
            self._check()
            if self._lifecycle is not Lifecycle.RUNNING:
                return False
            try:
                mutator(self._config)
            except Exception as e:
                self._poisoned = e
                raise LockFailure(f"Config update failed: {e}") from e
            return True

    def shutdown(self) -> bool:
        """Move to SHUTTING_DOWN; True only for the call that made the move"""
        with self._lock:
            if self._lifecycle is Lifecycle.SHUTTING_DOWN:
                return False
            self._lifecycle = Lifecycle.SHUTTING_DOWN
        logger.info("Radar shutting down")
        return True
