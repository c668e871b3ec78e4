# coding: utf-8

"""
Attendance Data Model

Value types passed between the extractor, the enrollment aggregator, the
recognition poller and the attendance backend.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import CorruptDescriptorError, NoFaceCapturedError

FaceDescriptor = Tuple[float, ...]


def as_descriptor(values) -> FaceDescriptor:
    """Convert a numeric sequence or numpy vector into an immutable descriptor"""
    array = np.asarray(values, dtype=np.float64)
    if array.ndim != 1 or array.size == 0:
        raise CorruptDescriptorError(
            f"Descriptor must be a non-empty 1-D vector, got shape {array.shape}"
        )
    return tuple(float(v) for v in array)


def average_descriptors(descriptors: Sequence[Sequence[float]]) -> FaceDescriptor:
    """
    Reduce captured descriptors to one template vector

    Each coordinate of the result is the arithmetic mean of that coordinate
    across all descriptors. Dimensionality is checked before any arithmetic.

    Raises:
        CorruptDescriptorError: empty vectors, mismatched lengths or non-finite values
    """
    if not descriptors:
        raise CorruptDescriptorError("Cannot average an empty descriptor list")

    dimension = len(descriptors[0])
    for index, descriptor in enumerate(descriptors):
        if len(descriptor) != dimension:
            raise CorruptDescriptorError(
                f"Descriptor {index} has {len(descriptor)} dimensions, expected {dimension}"
            )
    if dimension == 0:
        raise CorruptDescriptorError("Descriptors have zero dimensions")

    stacked = np.asarray(descriptors, dtype=np.float64)
    if not np.all(np.isfinite(stacked)):
        raise CorruptDescriptorError("Descriptors contain NaN or infinite values")

    return tuple(float(v) for v in stacked.mean(axis=0))


@dataclass(frozen=True)
class BoundingBox:
    """Face region in frame pixel coordinates"""
    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return max(self.width, 0) * max(self.height, 0)

    def to_dict(self) -> Dict[str, int]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


@dataclass(frozen=True)
class DetectionResult:
    """One detected face: its descriptor, region and optional landmark points"""
    descriptor: FaceDescriptor
    bounding_box: BoundingBox
    landmarks: Optional[Tuple[Tuple[float, float], ...]] = None

    @property
    def dimension(self) -> int:
        return len(self.descriptor)


@dataclass(frozen=True)
class Template:
    """Enrollment reference descriptor for one identity"""
    identity_key: str
    display_name: str
    descriptor: FaceDescriptor
    sample_count: int
    created_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        """Registration request body"""
        return {
            'identityKey': self.identity_key,
            'displayName': self.display_name,
            'template': list(self.descriptor),
            'timestamp': self.created_at.isoformat(),
        }


@dataclass
class EnrollmentSample:
    """
    Accumulator for one enrollment run

    Collects descriptors over up to ``target_count`` capture attempts and
    reduces them to a Template once collection is finished.
    """
    identity_key: str
    display_name: str
    target_count: int
    descriptors: List[FaceDescriptor] = field(default_factory=list)
    attempts: int = 0

    def record_attempt(self) -> int:
        self.attempts += 1
        return self.attempts

    def add(self, descriptor: FaceDescriptor):
        self.descriptors.append(descriptor)

    @property
    def captured(self) -> int:
        return len(self.descriptors)

    @property
    def is_complete(self) -> bool:
        return self.attempts >= self.target_count and self.captured > 0

    def reduce(self, created_at: datetime) -> Template:
        if not self.descriptors:
            raise NoFaceCapturedError(self.identity_key, self.attempts)
        return Template(
            identity_key=self.identity_key,
            display_name=self.display_name,
            descriptor=average_descriptors(self.descriptors),
            sample_count=self.captured,
            created_at=created_at,
        )


@dataclass(frozen=True)
class EnrollmentProgress:
    """Advisory progress report after each capture attempt"""
    attempt: int
    target_count: int
    captured: int

    @property
    def percent(self) -> float:
        if self.target_count <= 0:
            return 100.0
        return min(100.0, self.attempt * 100.0 / self.target_count)


@dataclass(frozen=True)
class RegistrationResponse:
    success: bool
    message: str


@dataclass(frozen=True)
class MatchResult:
    """Backend verdict for one submitted descriptor"""
    matched: bool
    identity_key: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class RosterEntry:
    """One identity on the attendance roster"""
    identity_key: str
    display_name: str
    present: bool
    timestamp: Optional[datetime]
    image_url: Optional[str] = None


@dataclass(frozen=True)
class TickOutcome:
    """What one recognition tick did"""
    status: str
    detections: int = 0
    new_entries: Tuple[RosterEntry, ...] = ()
    message: str = ""

    SKIPPED_NOT_READY = 'skipped_not_ready'
    SKIPPED_BUSY = 'skipped_busy'
    NO_FRAME = 'no_frame'
    NO_FACES = 'no_faces'
    MATCHED = 'matched'
    FAILED = 'failed'
    CANCELLED = 'cancelled'
