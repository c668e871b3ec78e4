# coding: utf-8

"""
Attendance Configuration

Settings for wiring the attendance components together. Values come from
explicit arguments or, through ``from_env``, from environment variables and
a ``.env`` file.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ValidationError


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {value!r}") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {value!r}") from None


@dataclass
class AttendanceConfig:
    """Configuration for AttendanceManager"""
    api_base_url: str = "http://localhost:5000"
    request_timeout: float = 10.0
    extractor: str = "dlib"
    extractor_options: Dict[str, Any] = field(default_factory=dict)
    camera_index: int = 0
    capture_count: int = 5
    capture_delay_ms: int = 300
    poll_interval_ms: int = 2000
    max_faces: int = 10
    azure_endpoint: Optional[str] = None
    azure_api_key: Optional[str] = None

    def validate(self) -> "AttendanceConfig":
        if not self.api_base_url:
            raise ValidationError("api_base_url is required")
        if self.capture_count < 1:
            raise ValidationError("capture_count must be at least 1")
        if self.capture_delay_ms < 0:
            raise ValidationError("capture_delay_ms must not be negative")
        if self.poll_interval_ms <= 0:
            raise ValidationError("poll_interval_ms must be positive")
        if self.max_faces < 1:
            raise ValidationError("max_faces must be at least 1")
        if self.extractor == "azure" and not (self.azure_endpoint and self.azure_api_key):
            raise ValidationError(
                "Azure extractor needs AZURE_FACE_API_ENDPOINT and AZURE_FACE_API_ACCOUNT_KEY"
            )
        return self

    def build_extractor_options(self) -> Dict[str, Any]:
        """Backend keyword arguments for create_extractor"""
        options = dict(self.extractor_options)
        if self.extractor == "azure":
            options.setdefault("endpoint", self.azure_endpoint)
            options.setdefault("api_key", self.azure_api_key)
        return options

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "AttendanceConfig":
        """Load settings from the environment (and a .env file when present)"""
        load_dotenv(dotenv_path)

        options = {}
        if os.getenv("DLIB_DETECTION_MODEL"):
            options["detection_model"] = os.getenv("DLIB_DETECTION_MODEL")
        if os.getenv("DLIB_SCALE"):
            options["scale"] = _env_float("DLIB_SCALE", 1.0)

        return cls(
            api_base_url=os.getenv("ATTENDANCE_API_BASE", cls.api_base_url),
            request_timeout=_env_float("ATTENDANCE_REQUEST_TIMEOUT", cls.request_timeout),
            extractor=os.getenv("ATTENDANCE_EXTRACTOR", cls.extractor).strip().lower(),
            extractor_options=options,
            camera_index=_env_int("CAMERA_INDEX", cls.camera_index),
            capture_count=_env_int("ENROLLMENT_CAPTURES", cls.capture_count),
            capture_delay_ms=_env_int("ENROLLMENT_CAPTURE_DELAY_MS", cls.capture_delay_ms),
            poll_interval_ms=_env_int("RECOGNITION_POLL_INTERVAL_MS", cls.poll_interval_ms),
            max_faces=_env_int("RECOGNITION_MAX_FACES", cls.max_faces),
            azure_endpoint=os.getenv("AZURE_FACE_API_ENDPOINT"),
            azure_api_key=os.getenv("AZURE_FACE_API_ACCOUNT_KEY"),
        ).validate()
