# coding: utf-8

"""
Azure Landmark Extractor

Landmark-based descriptor extractor built on the Azure AI Vision Face API.
The service returns 27 facial landmarks per detected face; they are
normalized to the face rectangle and flattened into a 54-dimensional
vector, so averaging across captures is independent of where the face sat
in the frame.

Key Features:
    - Azure Face API client management
    - JPEG encoding of OpenCV frames
    - Rectangle-normalized landmark vectors
    - Error handling and logging
"""

import logging
from io import BytesIO
from typing import Any, List, Optional

import numpy as np
from azure.ai.vision.face import FaceClient
from azure.ai.vision.face.models import FaceDetectionModel, FaceRecognitionModel
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError
from PIL import Image

from ..errors import ExtractorError, ValidationError
from ..models import BoundingBox, DetectionResult
from .base import DescriptorExtractor, to_rgb

LANDMARK_NAMES = (
	'pupil_left', 'pupil_right', 'nose_tip', 'mouth_left', 'mouth_right',
	'eyebrow_left_outer', 'eyebrow_left_inner',
	'eye_left_outer', 'eye_left_top', 'eye_left_bottom', 'eye_left_inner',
	'eyebrow_right_inner', 'eyebrow_right_outer',
	'eye_right_inner', 'eye_right_top', 'eye_right_bottom', 'eye_right_outer',
	'nose_root_left', 'nose_root_right',
	'nose_left_alar_top', 'nose_right_alar_top',
	'nose_left_alar_out_tip', 'nose_right_alar_out_tip',
	'upper_lip_top', 'upper_lip_bottom', 'under_lip_top', 'under_lip_bottom',
)

DESCRIPTOR_SIZE = 2 * len(LANDMARK_NAMES)


class AzureLandmarkExtractor(DescriptorExtractor):
	"""
	Azure Landmark Extractor

	Uses ``FaceClient.detect`` with landmarks enabled. A pre-built client can be
	passed in (tests, shared credentials); otherwise one is created from the
	endpoint and key on ``load()``.
	"""

	name = "azure"

	def __init__(
		self,
		endpoint: str = None,
		api_key: str = None,
		face_client: Any = None,
		jpeg_quality: int = 95,
		logger: Optional[logging.Logger] = None
	):
		super().__init__(logger)
		if face_client is None and not (endpoint and api_key):
			raise ValidationError("Azure extractor needs an endpoint and api key, or a face client")
		self.endpoint = endpoint
		self.api_key = api_key
		self.jpeg_quality = jpeg_quality
		self.face_client = face_client
		self._owns_client = face_client is None

	def _load_models(self):
		if self.face_client is None:
			self.face_client = FaceClient(self.endpoint, AzureKeyCredential(self.api_key))
			self.logger.info(f"Connected Azure Face client: {self.endpoint}")

	def close(self):
		super().close()
		if self._owns_client and self.face_client is not None:
			self.face_client.close()
			self.face_client = None

	def _detect(self, frame: np.ndarray, max_faces: int) -> List[DetectionResult]:
		image_bytes = self._image_to_bytes(frame)
		try:
			detected = self.face_client.detect(
				image_bytes,
				detection_model=FaceDetectionModel.DETECTION03,
				recognition_model=FaceRecognitionModel.RECOGNITION04,
				return_face_id=False,
				return_face_landmarks=True,
				return_recognition_model=False
			)
		except AzureError as e:
			raise ExtractorError(f"Azure face detection failed: {e}") from e

		results = []
		for face in detected or []:
			rect = face.face_rectangle
			box = BoundingBox(x=rect.left, y=rect.top, width=rect.width, height=rect.height)
			if box.width <= 0 or box.height <= 0 or face.face_landmarks is None:
				self.logger.debug("Skipping face without usable rectangle or landmarks")
				continue
			points = self._landmark_points(face.face_landmarks)
			results.append(DetectionResult(
				descriptor=self._normalize(points, box),
				bounding_box=box,
				landmarks=points,
			))

		self.logger.debug(f"Azure found {len(results)} faces")
		return results

	def _landmark_points(self, landmarks) -> tuple:
		points = []
		for landmark_name in LANDMARK_NAMES:
			coordinate = getattr(landmarks, landmark_name, None)
			if coordinate is None:
				raise ExtractorError(f"Azure response is missing landmark '{landmark_name}'")
			points.append((float(coordinate.x), float(coordinate.y)))
		return tuple(points)

	@staticmethod
	def _normalize(points, box: BoundingBox) -> tuple:
		descriptor = []
		for x, y in points:
			descriptor.append((x - box.x) / box.width)
			descriptor.append((y - box.y) / box.height)
		return tuple(descriptor)

	def _image_to_bytes(self, image: np.ndarray) -> bytes:
		"""Convert numpy image to JPEG bytes"""
		buffer = BytesIO()
		Image.fromarray(to_rgb(image)).save(buffer, format='JPEG', quality=self.jpeg_quality)
		return buffer.getvalue()
