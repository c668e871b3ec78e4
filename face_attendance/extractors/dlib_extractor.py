# coding: utf-8

"""
Dlib Descriptor Extractor

Computes 128-dimensional face descriptors with the ``face_recognition``
library (dlib HOG/CNN detector + ResNet embedding network).
"""

import logging
from typing import List, Optional

import cv2
import numpy as np

from ..errors import ExtractorError, ValidationError
from ..models import BoundingBox, DetectionResult, as_descriptor
from .base import DescriptorExtractor, to_rgb

DETECTION_MODELS = ("hog", "cnn")


class DlibDescriptorExtractor(DescriptorExtractor):
    """
    Dlib Descriptor Extractor

    Args:
        detection_model: "hog" (CPU) or "cnn" (needs a CUDA dlib build)
        scale: Downscale factor applied before detection, boxes are mapped back
        num_jitters: Re-sampling count for each encoding
        with_landmarks: Also return the 68-point landmark outline
        upsample: Number of times to upsample the image when detecting
    """

    name = "dlib"

    def __init__(
        self,
        detection_model: str = "hog",
        scale: float = 1.0,
        num_jitters: int = 1,
        with_landmarks: bool = False,
        upsample: int = 1,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(logger)
        if detection_model not in DETECTION_MODELS:
            raise ValidationError(f"Unknown detection model '{detection_model}'")
        if not 0 < scale <= 1.0:
            raise ValidationError(f"scale must be in (0, 1], got {scale}")
        self.detection_model = detection_model
        self.scale = scale
        self.num_jitters = num_jitters
        self.with_landmarks = with_landmarks
        self.upsample = upsample
        self._fr = None

    def _load_models(self):
        # dlib loads its model files on import
        import face_recognition
        self._fr = face_recognition

    def close(self):
        super().close()
        self._fr = None

    def _detect(self, frame: np.ndarray, max_faces: int) -> List[DetectionResult]:
        rgb = to_rgb(frame)
        if self.scale < 1.0:
            rgb = cv2.resize(rgb, (0, 0), fx=self.scale, fy=self.scale)

        try:
            locations = self._fr.face_locations(
                rgb, number_of_times_to_upsample=self.upsample, model=self.detection_model
            )
            if not locations:
                return []
            encodings = self._fr.face_encodings(
                rgb, known_face_locations=locations, num_jitters=self.num_jitters
            )
            landmarks = (
                self._fr.face_landmarks(rgb, face_locations=locations)
                if self.with_landmarks else [None] * len(locations)
            )
        except RuntimeError as e:
            raise ExtractorError(f"dlib extraction failed: {e}") from e

        results = []
        for (top, right, bottom, left), encoding, points in zip(locations, encodings, landmarks):
            results.append(DetectionResult(
                descriptor=as_descriptor(encoding),
                bounding_box=self._to_frame_box(top, right, bottom, left),
                landmarks=self._flatten_landmarks(points),
            ))

        self.logger.debug(f"dlib found {len(results)} faces")
        return results

    def _to_frame_box(self, top: int, right: int, bottom: int, left: int) -> BoundingBox:
        factor = 1.0 / self.scale
        return BoundingBox(
            x=int(round(left * factor)),
            y=int(round(top * factor)),
            width=int(round((right - left) * factor)),
            height=int(round((bottom - top) * factor)),
        )

    def _flatten_landmarks(self, points):
        if not points:
            return None
        factor = 1.0 / self.scale
        return tuple(
            (x * factor, y * factor)
            for feature in points.values()
            for x, y in feature
        )
