# coding: utf-8

"""
Tests Package

Test suite for the face attendance client.

Test Structure:
- conftest.py: Fake extractor, frame source and attendance backend
- test_models.py / test_roster.py: Data model and roster merge rules
- test_enrollment.py: Capture, averaging and registration
- test_recognition.py: Polling, backpressure and cancellation
- test_services.py: REST client against a fake session
- test_extractors.py, test_frame_source.py, test_config.py, test_attendance_manager.py

Usage:
    pytest tests -v
"""
