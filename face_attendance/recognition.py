# coding: utf-8

"""
Recognition Poller

Periodically samples the live video feed, submits every visible face's
descriptor to the attendance backend in one match request and merges
confirmed identities into the roster.

Scheduling rules:
    - At most one extraction + match round-trip is in flight at any time.
      A tick that fires while the previous one is still running is skipped,
      never queued.
    - A failed tick is logged and leaves the roster untouched; the next tick
      runs normally.
    - After stop() no further ticks fire, and results from a round-trip that
      was in flight when stop() was called are discarded.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional, Tuple

from .errors import AttendanceError, ValidationError
from .extractors import DescriptorExtractor
from .frame_source import FrameSource
from .models import RosterEntry, TickOutcome
from .roster import Roster
from .services import AttendanceServiceClient

DEFAULT_POLL_INTERVAL_MS = 2000
DEFAULT_MAX_FACES = 10

RosterCallback = Callable[[Tuple[RosterEntry, ...]], None]


class RecognitionPoller:
    """
    Recognition Poller

    Args:
        extractor: Descriptor extractor; ticks are skipped until it is loaded
        frame_source: Source of the live video frames
        service: Client used for the match call
        roster: Roster updated by the merge step
        max_faces: Maximum faces submitted per tick
        clock: Returns the first-seen timestamp for new roster entries
        logger: Optional logger instance
    """

    def __init__(
        self,
        extractor: DescriptorExtractor,
        frame_source: FrameSource,
        service: AttendanceServiceClient,
        roster: Roster,
        max_faces: int = DEFAULT_MAX_FACES,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None
    ):
        if max_faces < 1:
            raise ValidationError(f"max_faces must be at least 1, got {max_faces}")
        self.extractor = extractor
        self.frame_source = frame_source
        self.service = service
        self.roster = roster
        self.max_faces = max_faces
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)

        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._generation = 0
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._on_roster_update: Optional[RosterCallback] = None
        self.interval_ms: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_busy(self) -> bool:
        """True while a round-trip is in flight"""
        return self._in_flight.locked()

    def start(self, interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
              on_roster_update: Optional[RosterCallback] = None):
        """Start ticking every ``interval_ms`` milliseconds on a background thread"""
        if interval_ms <= 0:
            raise ValidationError(f"interval_ms must be positive, got {interval_ms}")
        if self.is_running:
            self.logger.info("Recognition poller already running")
            return

        stop_event = threading.Event()
        with self._state_lock:
            self._stop_event = stop_event
            self._on_roster_update = on_roster_update
            self.interval_ms = interval_ms
            self._thread = threading.Thread(
                target=self._run,
                args=(interval_ms / 1000.0, stop_event),
                daemon=True,
                name="RecognitionPoller"
            )
            self._thread.start()
        self.logger.info(f"Started recognition poller every {interval_ms} ms")

    def stop(self, timeout: float = 5.0):
        """Stop ticking and discard any result still in flight"""
        with self._state_lock:
            self._generation += 1
            stop_event, self._stop_event = self._stop_event, None
            thread, self._thread = self._thread, None
            self._on_roster_update = None

        if stop_event is not None:
            stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                self.logger.warning("Recognition poller thread still finishing an in-flight request")
        self.logger.info("Stopped recognition poller")

    def _run(self, interval: float, stop_event: threading.Event):
        next_deadline = time.monotonic() + interval
        while not stop_event.wait(max(0.0, next_deadline - time.monotonic())):
            try:
                self.tick()
            except Exception:
                self.logger.exception("Unexpected error in recognition tick")

            now = time.monotonic()
            next_deadline += interval
            if next_deadline <= now:
                missed = int((now - next_deadline) // interval) + 1
                next_deadline += missed * interval
                self.logger.debug(f"Skipped {missed} overdue ticks")

    def tick(self) -> TickOutcome:
        """Run one recognition cycle"""
        if not self.extractor.is_ready:
            self.logger.debug("Face models still loading, tick skipped")
            return TickOutcome(TickOutcome.SKIPPED_NOT_READY, message="Loading model... Please wait.")

        if not self._in_flight.acquire(blocking=False):
            self.logger.debug("Previous round-trip still in flight, tick skipped")
            return TickOutcome(TickOutcome.SKIPPED_BUSY)

        try:
            with self._state_lock:
                generation = self._generation
                callback = self._on_roster_update
            outcome = self._round_trip(generation)
        finally:
            self._in_flight.release()

        if outcome.status == TickOutcome.MATCHED and callback is not None:
            self._notify(callback, generation)
        return outcome

    def _round_trip(self, generation: int) -> TickOutcome:
        frame = self.frame_source.read()
        if frame is None:
            return TickOutcome(TickOutcome.NO_FRAME, message="Unable to capture image.")

        try:
            detections = self.extractor.extract(frame, max_faces=self.max_faces)
            if not detections:
                return TickOutcome(TickOutcome.NO_FACES, message="No face detected.")
            results = self.service.match([d.descriptor for d in detections])
        except AttendanceError as e:
            self.logger.error(f"Recognition tick failed: {e}")
            return TickOutcome(TickOutcome.FAILED, message=str(e))

        with self._state_lock:
            if generation != self._generation:
                self.logger.debug("Poller stopped during round-trip, result discarded")
                return TickOutcome(TickOutcome.CANCELLED, detections=len(detections))
            new_entries = self.roster.merge(results, self._clock())

        recognized = [r.display_name or r.identity_key for r in results if r.matched]
        message = f"Recognized: {', '.join(recognized)}" if recognized else "Face not recognized."
        self.logger.debug(
            f"Tick: {len(detections)} faces, {len(recognized)} recognized, {len(new_entries)} new"
        )
        return TickOutcome(
            TickOutcome.MATCHED,
            detections=len(detections),
            new_entries=tuple(new_entries),
            message=message,
        )

    def _notify(self, callback: RosterCallback, generation: int):
        with self._state_lock:
            if generation != self._generation:
                return
        try:
            callback(self.roster.snapshot())
        except Exception as e:
            self.logger.error(f"Roster update callback failed: {e}")

    def __repr__(self) -> str:
        return f"RecognitionPoller(running={self.is_running}, interval_ms={self.interval_ms})"
