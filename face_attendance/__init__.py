# coding: utf-8

"""
Face Attendance Package

Client-side attendance core: enrolls identities from averaged face
descriptors and keeps a live roster from periodic recognition against a
remote attendance backend.

Main Components:
- AttendanceManager: Main public API
- EnrollmentAggregator: Capture, average and register templates
- RecognitionPoller: Periodic matching into the roster
- Roster: Deduplicated, insertion-ordered attendance roster
- AttendanceServiceClient: REST client for the attendance backend
- DescriptorExtractor: dlib and Azure descriptor backends

Features:
- Missed captures tolerated during enrollment
- Skip-not-queue backpressure for recognition ticks
- Monotonic, first-seen-wins presence
- Extractor selected by configuration
"""

from .attendance_manager import AttendanceManager
from .config import AttendanceConfig
from .enrollment import EnrollmentAggregator
from .errors import (
	AttendanceError,
	CorruptDescriptorError,
	ExtractorError,
	ExtractorNotReadyError,
	InvalidFrameError,
	NoFaceCapturedError,
	RegistrationRejectedError,
	ServiceResponseError,
	ServiceUnavailableError,
	ValidationError,
)
from .extractors import AzureLandmarkExtractor, DescriptorExtractor, DlibDescriptorExtractor, create_extractor
from .frame_source import CameraFrameSource, FrameSource, StaticFrameSource, decode_base64_image
from .models import (
	BoundingBox,
	DetectionResult,
	EnrollmentProgress,
	EnrollmentSample,
	MatchResult,
	RosterEntry,
	Template,
	TickOutcome,
	average_descriptors,
)
from .recognition import RecognitionPoller
from .roster import Roster
from .services import AttendanceServiceClient

__version__ = "1.0.0"

__all__ = [
	"AttendanceManager",
	"AttendanceConfig",
	"EnrollmentAggregator",
	"RecognitionPoller",
	"Roster",
	"AttendanceServiceClient",
	"DescriptorExtractor",
	"DlibDescriptorExtractor",
	"AzureLandmarkExtractor",
	"create_extractor",
	"CameraFrameSource",
	"FrameSource",
	"StaticFrameSource",
	"decode_base64_image",
	"BoundingBox",
	"DetectionResult",
	"EnrollmentProgress",
	"EnrollmentSample",
	"MatchResult",
	"RosterEntry",
	"Template",
	"TickOutcome",
	"average_descriptors",
	"AttendanceError",
	"ValidationError",
	"NoFaceCapturedError",
	"CorruptDescriptorError",
	"ServiceUnavailableError",
	"ServiceResponseError",
	"RegistrationRejectedError",
	"ExtractorError",
	"ExtractorNotReadyError",
	"InvalidFrameError",
]
