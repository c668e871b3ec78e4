# coding: utf-8

"""
Descriptor Extractor Base

Foundation class for the face descriptor extractors. Concrete extractors wrap a
detection + embedding backend and all satisfy the same contract:

    extract(frame, max_faces) -> ordered list of DetectionResult

Key Features:
    - Shared frame validation (malformed or undersized frames are rejected)
    - Largest-face-first ordering before truncation to ``max_faces``
    - Readiness tracking for lazily loaded models
    - Error handling and logging
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import cv2
import numpy as np

from ..errors import ExtractorNotReadyError, InvalidFrameError, ValidationError
from ..models import DetectionResult

MIN_FRAME_SIZE = 32


def to_rgb(frame: np.ndarray) -> np.ndarray:
	"""Convert an OpenCV frame (gray, BGR or BGRA) to contiguous RGB"""
	if frame.ndim == 2:
		return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
	if frame.shape[2] == 4:
		return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB)
	return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)


class DescriptorExtractor(ABC):
	"""
	Descriptor Extractor

	Base class providing model lifecycle and the public ``extract`` contract.
	Subclasses implement ``_load_models`` and ``_detect``.
	"""

	name = "base"

	def __init__(self, logger: Optional[logging.Logger] = None):
		self.logger = logger or logging.getLogger(__name__)
		self._ready = False

	@property
	def is_ready(self) -> bool:
		"""True once the models are loaded"""
		return self._ready

	def load(self) -> "DescriptorExtractor":
		"""Load the backend models; safe to call more than once"""
		if self._ready:
			return self
		self._load_models()
		self._ready = True
		self.logger.info(f"Descriptor extractor '{self.name}' loaded")
		return self

	def close(self):
		"""Release backend resources"""
		self._ready = False

	def extract(self, frame: np.ndarray, max_faces: int = 1) -> List[DetectionResult]:
		"""
		Detect faces in a frame and compute one descriptor per face

		Args:
			frame: BGR (or grayscale) image as numpy array
			max_faces: Maximum number of results, largest faces first

		Returns:
			Detection results ordered by descending face area; empty when no face is found

		Raises:
			ExtractorNotReadyError: models not loaded
			InvalidFrameError: frame malformed or too small
			ValidationError: max_faces < 1
		"""
		if not self._ready:
			raise ExtractorNotReadyError(f"Extractor '{self.name}' is not loaded")
		if max_faces < 1:
			raise ValidationError(f"max_faces must be at least 1, got {max_faces}")

		self._validate_frame(frame)
		results = self._detect(frame, max_faces)
		results = sorted(results, key=lambda r: r.bounding_box.area, reverse=True)
		if len(results) > max_faces:
			self.logger.debug(f"Keeping {max_faces} of {len(results)} detected faces")
		return results[:max_faces]

	def _validate_frame(self, frame: np.ndarray):
		if not isinstance(frame, np.ndarray):
			raise InvalidFrameError(f"Frame must be a numpy array, got {type(frame).__name__}")
		if frame.ndim == 3 and frame.shape[2] not in (3, 4):
			raise InvalidFrameError(f"Unsupported channel count: {frame.shape[2]}")
		if frame.ndim not in (2, 3):
			raise InvalidFrameError(f"Unsupported frame shape: {frame.shape}")
		height, width = frame.shape[:2]
		if height < MIN_FRAME_SIZE or width < MIN_FRAME_SIZE:
			raise InvalidFrameError(
				f"Frame {width}x{height} is smaller than {MIN_FRAME_SIZE}x{MIN_FRAME_SIZE}"
			)

	@abstractmethod
	def _load_models(self):
		"""Load detector and descriptor models"""

	@abstractmethod
	def _detect(self, frame: np.ndarray, max_faces: int) -> List[DetectionResult]:
		"""Run the backend on a validated frame"""

	def __repr__(self) -> str:
		return f"{self.__class__.__name__}(ready={self._ready})"
