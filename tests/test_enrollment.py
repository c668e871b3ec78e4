# coding: utf-8

import pytest

from face_attendance.enrollment import EnrollmentAggregator
from face_attendance.errors import (
    CorruptDescriptorError,
    ExtractorNotReadyError,
    NoFaceCapturedError,
    RegistrationRejectedError,
    ServiceUnavailableError,
    ValidationError,
)
from face_attendance.frame_source import StaticFrameSource
from face_attendance.models import RegistrationResponse

from tests.conftest import ScriptedExtractor, make_detection


def build(extractor, frame_source, service, clock=None, delays=None, **kwargs):
    delays = delays if delays is not None else []
    options = {'sleep': delays.append}
    if clock is not None:
        options['clock'] = clock
    options.update(kwargs)
    return EnrollmentAggregator(extractor, frame_source, service, **options)


class TestEnroll:
    def test_averages_successful_captures_only(self, frame_source, service, clock):
        extractor = ScriptedExtractor([
            [make_detection([1, 0])],
            [make_detection([3, 0])],
            [],
            [make_detection([2, 0])],
            [],
        ])
        aggregator = build(extractor, frame_source, service, clock)

        template = aggregator.enroll("7", "Ann", 5)

        assert template.descriptor == pytest.approx((2.0, 0.0))
        assert template.sample_count == 3
        assert service.registered == [template]
        assert extractor.calls == [1, 1, 1, 1, 1]

    def test_registration_payload(self, frame_source, service, clock):
        extractor = ScriptedExtractor(default=[make_detection([0.5, 0.5])])
        build(extractor, frame_source, service, clock).enroll(" 7 ", " Ann ", 2)

        payload = service.registered[0].to_payload()
        assert payload['identityKey'] == "7"
        assert payload['displayName'] == "Ann"
        assert payload['template'] == pytest.approx([0.5, 0.5])
        assert payload['timestamp'] == "2024-03-01T09:00:00"

    def test_zero_captures_never_registers(self, frame_source, service):
        extractor = ScriptedExtractor(default=[])
        aggregator = build(extractor, frame_source, service)

        with pytest.raises(NoFaceCapturedError):
            aggregator.enroll("7", "Ann", 4)
        assert service.registered == []
        assert len(extractor.calls) == 4

    def test_dimension_mismatch_is_fatal(self, frame_source, service):
        extractor = ScriptedExtractor([
            [make_detection([1, 0])],
            [make_detection([1, 0, 0])],
        ])
        with pytest.raises(CorruptDescriptorError):
            build(extractor, frame_source, service).enroll("7", "Ann", 2)
        assert service.registered == []

    def test_first_detection_is_used(self, frame_source, service):
        extractor = ScriptedExtractor(default=[
            make_detection([9, 9], size=80),
            make_detection([1, 1], size=40),
        ])
        template = build(extractor, frame_source, service).enroll("7", "Ann", 1)
        assert template.descriptor == pytest.approx((9.0, 9.0))

    def test_missing_frames_count_as_missed_captures(self, service, frame):
        frames = StaticFrameSource([None, frame, None])
        extractor = ScriptedExtractor(default=[make_detection([4, 2])])
        template = build(extractor, frames, service).enroll("7", "Ann", 3)
        assert template.sample_count == 1
        assert len(extractor.calls) == 1

    def test_delay_between_attempts(self, frame_source, service):
        delays = []
        extractor = ScriptedExtractor(default=[make_detection([1])])
        build(extractor, frame_source, service, delays=delays).enroll("7", "Ann", 5)
        assert delays == [0.3, 0.3, 0.3, 0.3]

    def test_zero_delay_never_sleeps(self, frame_source, service):
        delays = []
        extractor = ScriptedExtractor(default=[make_detection([1])])
        build(extractor, frame_source, service, delays=delays, capture_delay_ms=0).enroll("7", "Ann", 3)
        assert delays == []

    def test_progress_reports_every_attempt(self, frame_source, service):
        extractor = ScriptedExtractor([[make_detection([1])], [], [make_detection([3])]])
        reports = []
        build(extractor, frame_source, service).enroll("7", "Ann", 3, on_progress=reports.append)

        assert [(p.attempt, p.captured) for p in reports] == [(1, 1), (2, 1), (3, 2)]
        assert reports[-1].percent == pytest.approx(100.0)

    def test_failing_progress_callback_does_not_abort(self, frame_source, service):
        def explode(progress):
            raise RuntimeError("ui gone")

        extractor = ScriptedExtractor(default=[make_detection([1])])
        template = build(extractor, frame_source, service).enroll("7", "Ann", 2, on_progress=explode)
        assert template.sample_count == 2


class TestEnrollFailures:
    @pytest.mark.parametrize("key,name", [("", "Ann"), ("7", ""), ("  ", "Ann"), (None, "Ann"), ("7", None)])
    def test_identity_fields_required(self, frame_source, service, key, name):
        extractor = ScriptedExtractor(default=[make_detection([1])])
        with pytest.raises(ValidationError):
            build(extractor, frame_source, service).enroll(key, name, 3)
        assert extractor.calls == []

    def test_target_count_must_be_positive(self, frame_source, service):
        extractor = ScriptedExtractor(default=[make_detection([1])])
        with pytest.raises(ValidationError):
            build(extractor, frame_source, service).enroll("7", "Ann", 0)

    @pytest.mark.parametrize("count", [True, 2.0, "3"])
    def test_target_count_must_be_an_integer(self, frame_source, service, count):
        extractor = ScriptedExtractor(default=[make_detection([1])])
        with pytest.raises(ValidationError):
            build(extractor, frame_source, service).enroll("7", "Ann", count)
        assert extractor.calls == []
        assert service.registered == []

    def test_numeric_roll_is_accepted(self, frame_source, service):
        extractor = ScriptedExtractor(default=[make_detection([1])])
        template = build(extractor, frame_source, service).enroll(7, "Ann", 1)
        assert template.identity_key == "7"

    def test_extractor_not_ready(self, frame_source, service):
        extractor = ScriptedExtractor(default=[make_detection([1])], ready=False)
        with pytest.raises(ExtractorNotReadyError):
            build(extractor, frame_source, service).enroll("7", "Ann", 3)

    def test_rejection_is_surfaced_verbatim(self, frame_source, service):
        service.register_response = RegistrationResponse(False, "Roll number already registered")
        extractor = ScriptedExtractor(default=[make_detection([1])])
        with pytest.raises(RegistrationRejectedError, match="Roll number already registered"):
            build(extractor, frame_source, service).enroll("7", "Ann", 1)

    def test_service_failure_is_not_retried(self, frame_source, service, unavailable):
        calls = []

        def failing_register(template):
            calls.append(template)
            raise unavailable

        service.register = failing_register
        extractor = ScriptedExtractor(default=[make_detection([1])])
        with pytest.raises(ServiceUnavailableError):
            build(extractor, frame_source, service).enroll("7", "Ann", 2)
        assert len(calls) == 1

    def test_negative_delay_rejected(self, frame_source, service):
        with pytest.raises(ValidationError):
            EnrollmentAggregator(ScriptedExtractor(), frame_source, service, capture_delay_ms=-1)
