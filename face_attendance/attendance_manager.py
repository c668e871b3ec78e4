# coding: utf-8

"""
Attendance Manager

High-level attendance manager tying together the descriptor extractor, the
frame source, the attendance backend client, the enrollment aggregator, the
roster and the recognition poller.

Key Features:
    - Face enrollment with averaged templates
    - Periodic recognition into a deduplicated roster
    - Roster hydration from the backend present list
    - Configuration from explicit settings or the environment
"""

import logging
from typing import Optional, Tuple

from .config import AttendanceConfig
from .enrollment import EnrollmentAggregator, ProgressCallback
from .extractors import DescriptorExtractor, create_extractor
from .frame_source import CameraFrameSource, FrameSource
from .models import RosterEntry, Template
from .recognition import RecognitionPoller, RosterCallback
from .roster import Roster
from .services import AttendanceServiceClient


class AttendanceManager:
	"""
	Attendance Manager

	High-level interface for enrollment and recognition. Collaborators can be
	injected; anything left out is built from the configuration.
	"""

	def __init__(
		self,
		config: Optional[AttendanceConfig] = None,
		extractor: Optional[DescriptorExtractor] = None,
		frame_source: Optional[FrameSource] = None,
		service: Optional[AttendanceServiceClient] = None,
		roster: Optional[Roster] = None,
		logger: Optional[logging.Logger] = None
	):
		"""
		Initialize Attendance Manager

		Args:
			config: Settings; defaults to AttendanceConfig()
			extractor: Descriptor extractor (built from config.extractor otherwise)
			frame_source: Frame source (camera config.camera_index otherwise)
			service: Backend client (config.api_base_url otherwise)
			roster: Starting roster (empty otherwise)
			logger: Optional logger instance
		"""
		self.config = (config or AttendanceConfig()).validate()
		self.logger = logger or self._setup_logger()

		self.extractor = extractor or create_extractor(
			self.config.extractor,
			logger=self.logger,
			**self.config.build_extractor_options()
		)
		self._owns_frame_source = frame_source is None
		self.frame_source = frame_source or CameraFrameSource(self.config.camera_index, logger=self.logger)
		self.service = service or AttendanceServiceClient(
			self.config.api_base_url,
			timeout=self.config.request_timeout,
			logger=self.logger
		)
		self.roster = roster if roster is not None else Roster(logger=self.logger)

		self.aggregator = EnrollmentAggregator(
			self.extractor,
			self.frame_source,
			self.service,
			capture_delay_ms=self.config.capture_delay_ms,
			logger=self.logger
		)
		self.poller = RecognitionPoller(
			self.extractor,
			self.frame_source,
			self.service,
			self.roster,
			max_faces=self.config.max_faces,
			logger=self.logger
		)

		self.logger.info(f"Initialized AttendanceManager: {self.config.api_base_url}")

	@classmethod
	def from_env(cls, dotenv_path: Optional[str] = None, **kwargs) -> "AttendanceManager":
		"""Build a manager from environment settings"""
		return cls(AttendanceConfig.from_env(dotenv_path), **kwargs)

	def _setup_logger(self) -> logging.Logger:
		"""Setup logger for the manager"""
		logger = logging.getLogger(f"{self.__class__.__name__}")
		if not logger.handlers:
			handler = logging.StreamHandler()
			formatter = logging.Formatter(
				'%(asctime)s %(levelname)s %(message)s',
				datefmt='%Y-%m-%d %H:%M:%S'
			)
			handler.setFormatter(formatter)
			logger.addHandler(handler)
			logger.setLevel(logging.INFO)
		return logger

	def load_models(self):
		"""Load the extractor models (ticks are skipped until this finishes)"""
		self.extractor.load()

	# Enrollment
	def enroll(
		self,
		identity_key: str,
		display_name: str,
		target_count: Optional[int] = None,
		on_progress: Optional[ProgressCallback] = None
	) -> Template:
		"""
		Enroll an identity from several webcam captures

		Args:
			identity_key: Roll number or other unique id
			display_name: Name shown on the roster
			target_count: Capture attempts (config.capture_count by default)
			on_progress: Called after every capture attempt

		Returns:
			The registered Template
		"""
		return self.aggregator.enroll(
			identity_key,
			display_name,
			self.config.capture_count if target_count is None else target_count,
			on_progress=on_progress
		)

	# Recognition
	def start_recognition(self, on_roster_update: Optional[RosterCallback] = None, interval_ms: Optional[int] = None):
		"""Start the periodic recognition loop"""
		if interval_ms is None:
			interval_ms = self.config.poll_interval_ms
		self.poller.start(interval_ms, on_roster_update)

	def stop_recognition(self):
		"""Stop the recognition loop"""
		self.poller.stop()

	# Roster
	def reload_roster(self) -> Tuple[RosterEntry, ...]:
		"""Replace the roster with the backend's present list"""
		self.roster.reload(self.service.fetch_roster())
		return self.roster.snapshot()

	def get_roster(self) -> Tuple[RosterEntry, ...]:
		"""Current roster snapshot"""
		return self.roster.snapshot()

	def close(self):
		"""Stop recognition and release camera, models and HTTP session"""
		self.poller.stop()
		if self._owns_frame_source and hasattr(self.frame_source, "release"):
			self.frame_source.release()
		self.extractor.close()
		self.service.close()

	def __enter__(self):
		return self

	def __exit__(self, exc_type, exc, tb):
		self.close()

	def __str__(self) -> str:
		return f"AttendanceManager(api='{self.config.api_base_url}', extractor='{self.config.extractor}')"

	def __repr__(self) -> str:
		return (f"AttendanceManager(api='{self.config.api_base_url}', "
				f"roster={len(self.roster)}, "
				f"running={self.poller.is_running})")
