# coding: utf-8

"""
Enrollment Aggregator

Captures repeated webcam samples for one identity, drops the captures where
no face was found, averages the remaining descriptors into a single template
and registers it with the attendance backend.

Key Features:
    - Tolerates individual missed captures
    - Per-dimension mean over all successful descriptors
    - Dimensionality checks before reduction
    - Advisory progress reporting
    - No automatic retries of registration
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from .errors import ExtractorNotReadyError, RegistrationRejectedError, ValidationError
from .extractors import DescriptorExtractor
from .frame_source import FrameSource
from .models import EnrollmentProgress, EnrollmentSample, Template
from .services import AttendanceServiceClient

DEFAULT_CAPTURE_COUNT = 5
DEFAULT_CAPTURE_DELAY_MS = 300

ProgressCallback = Callable[[EnrollmentProgress], None]


class EnrollmentAggregator:
    """
    Enrollment Aggregator

    Args:
        extractor: Descriptor extractor; must be loaded before enrolling
        frame_source: Source of webcam frames
        service: Client used for the registration call
        capture_delay_ms: Pause between consecutive capture attempts
        sleep: Sleep function (seconds), replaceable in tests
        clock: Returns the registration timestamp
        logger: Optional logger instance
    """

    def __init__(
        self,
        extractor: DescriptorExtractor,
        frame_source: FrameSource,
        service: AttendanceServiceClient,
        capture_delay_ms: int = DEFAULT_CAPTURE_DELAY_MS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None
    ):
        if capture_delay_ms < 0:
            raise ValidationError(f"capture_delay_ms must not be negative, got {capture_delay_ms}")
        self.extractor = extractor
        self.frame_source = frame_source
        self.service = service
        self.capture_delay_ms = capture_delay_ms
        self._sleep = sleep
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def enroll(
        self,
        identity_key: str,
        display_name: str,
        target_count: int = DEFAULT_CAPTURE_COUNT,
        on_progress: Optional[ProgressCallback] = None
    ) -> Template:
        """
        Capture, average and register a template for one identity

        Args:
            identity_key: Roll number or other unique id
            display_name: Name shown on the roster
            target_count: Number of capture attempts
            on_progress: Called after every attempt

        Returns:
            The registered Template

        Raises:
            ValidationError: empty identity fields or target_count < 1
            ExtractorNotReadyError: extractor models not loaded
            NoFaceCapturedError: no attempt produced a face
            CorruptDescriptorError: descriptors disagree in dimensionality
            ServiceUnavailableError: registration call failed
            RegistrationRejectedError: backend answered success=false
        """
        sample = self._new_sample(identity_key, display_name, target_count)
        if not self.extractor.is_ready:
            raise ExtractorNotReadyError("Face models are still loading, try again shortly")

        self.logger.info(
            f"Enrolling '{sample.display_name}' ({sample.identity_key}) with {target_count} captures"
        )
        self._collect(sample, on_progress)

        template = sample.reduce(self._clock())
        self.logger.info(
            f"Averaged {template.sample_count}/{target_count} captures into a "
            f"{len(template.descriptor)}-d template"
        )

        response = self.service.register(template)
        if not response.success:
            raise RegistrationRejectedError(template.identity_key, response.message)
        return template

    def _new_sample(self, identity_key: str, display_name: str, target_count: int) -> EnrollmentSample:
        # roll numbers may arrive as ints
        identity_key = "" if identity_key is None else str(identity_key).strip()
        display_name = "" if display_name is None else str(display_name).strip()
        if not identity_key:
            raise ValidationError("Identity key is required")
        if not display_name:
            raise ValidationError("Display name is required")
        if isinstance(target_count, bool) or not isinstance(target_count, int) or target_count < 1:
            raise ValidationError(f"target_count must be a positive integer, got {target_count!r}")
        return EnrollmentSample(identity_key, display_name, target_count)

    def _collect(self, sample: EnrollmentSample, on_progress: Optional[ProgressCallback]):
        for _ in range(sample.target_count):
            attempt = sample.record_attempt()
            frame = self.frame_source.read()

            if frame is None:
                self.logger.warning(f"Capture {attempt}/{sample.target_count}: no frame available")
            else:
                detections = self.extractor.extract(frame, max_faces=1)
                if detections:
                    sample.add(detections[0].descriptor)
                    self.logger.debug(f"Capture {attempt}/{sample.target_count}: face captured")
                else:
                    self.logger.warning(f"Capture {attempt}/{sample.target_count}: no face detected")

            if on_progress is not None:
                self._report(on_progress, EnrollmentProgress(attempt, sample.target_count, sample.captured))

            if attempt < sample.target_count and self.capture_delay_ms:
                self._sleep(self.capture_delay_ms / 1000.0)

    def _report(self, on_progress: ProgressCallback, progress: EnrollmentProgress):
        try:
            on_progress(progress)
        except Exception as e:
            self.logger.error(f"Progress callback failed: {e}")
