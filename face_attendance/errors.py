# coding: utf-8

"""
Attendance Errors

Exception hierarchy shared by enrollment, recognition and the service client.
Enrollment surfaces these to the caller unchanged; the recognition poller logs
them per tick and keeps running.
"""


class AttendanceError(Exception):
    """Base class for all face attendance errors"""


class ValidationError(AttendanceError):
    """Invalid caller input (empty identity fields, bad counts, unknown options)"""


class NoFaceCapturedError(AttendanceError):
    """Enrollment finished every attempt without a usable face"""

    def __init__(self, identity_key: str, attempts: int):
        self.identity_key = identity_key
        self.attempts = attempts
        super().__init__(
            f"No face captured for '{identity_key}' after {attempts} attempts"
        )


class CorruptDescriptorError(AttendanceError):
    """Extractor produced descriptors of inconsistent or invalid shape"""


class ServiceUnavailableError(AttendanceError):
    """Attendance backend could not be reached or failed the request"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class ServiceResponseError(ServiceUnavailableError):
    """Attendance backend answered with a body we cannot interpret"""


class RegistrationRejectedError(AttendanceError):
    """Backend refused the registration; message is the backend's own"""

    def __init__(self, identity_key: str, message: str):
        self.identity_key = identity_key
        self.message = message
        super().__init__(message)


class ExtractorError(AttendanceError):
    """Descriptor extractor failed"""


class ExtractorNotReadyError(ExtractorError):
    """Extractor models are not loaded yet"""


class InvalidFrameError(ExtractorError):
    """Frame is malformed or too small to run detection on"""
