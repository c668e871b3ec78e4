# coding: utf-8

import threading
from datetime import datetime, timedelta

import numpy as np
import pytest

from face_attendance.errors import ServiceUnavailableError
from face_attendance.extractors.base import DescriptorExtractor
from face_attendance.frame_source import StaticFrameSource
from face_attendance.models import BoundingBox, DetectionResult, MatchResult, RegistrationResponse


def make_detection(descriptor, x=0, y=0, size=50):
    return DetectionResult(
        descriptor=tuple(float(v) for v in descriptor),
        bounding_box=BoundingBox(x, y, size, size),
    )


class ScriptedExtractor(DescriptorExtractor):
    """Returns one scripted list of detections per extract call"""

    name = "scripted"

    def __init__(self, script=None, default=None, ready=True):
        super().__init__()
        self.script = list(script or [])
        self.default = default or []
        self.calls = []
        if ready:
            self.load()

    def _load_models(self):
        pass

    def _detect(self, frame, max_faces):
        self.calls.append(max_faces)
        step = self.script.pop(0) if self.script else self.default
        if isinstance(step, Exception):
            raise step
        return list(step)


class FakeAttendanceService:
    """In-memory stand-in for AttendanceServiceClient"""

    def __init__(self, match_results=None, register_response=None, roster=None):
        self.match_results = match_results
        self.register_response = register_response or RegistrationResponse(True, "Student registered successfully!")
        self.roster = roster or []
        self.registered = []
        self.match_calls = []
        self.match_error = None
        self.register_error = None
        self.roster_error = None
        self.closed = False

    def register(self, template):
        if self.register_error:
            raise self.register_error
        self.registered.append(template)
        return self.register_response

    def match(self, descriptors):
        self.match_calls.append([list(d) for d in descriptors])
        if self.match_error:
            raise self.match_error
        if callable(self.match_results):
            return self.match_results(descriptors)
        if self.match_results is None:
            return [MatchResult(matched=False) for _ in descriptors]
        return list(self.match_results)

    def fetch_roster(self):
        if self.roster_error:
            raise self.roster_error
        return list(self.roster)

    def close(self):
        self.closed = True


class BlockingMatchService(FakeAttendanceService):
    """Holds every match call until released; tracks concurrent calls"""

    def __init__(self, match_results=None):
        super().__init__(match_results=match_results)
        self.entered = threading.Event()
        self.release = threading.Event()
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def match(self, descriptors):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        try:
            self.release.wait(timeout=5.0)
            return super().match(descriptors)
        finally:
            with self._lock:
                self.active -= 1


class TickingClock:
    """Clock advancing one second per call"""

    def __init__(self, start=datetime(2024, 3, 1, 9, 0, 0)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current = value + timedelta(seconds=1)
        return value


@pytest.fixture
def frame():
    return np.zeros((64, 64, 3), dtype=np.uint8)


@pytest.fixture
def frame_source(frame):
    return StaticFrameSource([frame])


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def service():
    return FakeAttendanceService()


@pytest.fixture
def unavailable():
    return ServiceUnavailableError("connection refused")
