# coding: utf-8

"""
Descriptor Extractors

Interchangeable face descriptor backends behind one ``extract`` contract,
selected by configuration:

- DlibDescriptorExtractor: 128-d embeddings from the face_recognition library
- AzureLandmarkExtractor: 54-d landmark vectors from Azure AI Vision Face
"""

from ..errors import ValidationError
from .azure_extractor import AzureLandmarkExtractor
from .base import DescriptorExtractor, MIN_FRAME_SIZE
from .dlib_extractor import DlibDescriptorExtractor

EXTRACTORS = {
    DlibDescriptorExtractor.name: DlibDescriptorExtractor,
    AzureLandmarkExtractor.name: AzureLandmarkExtractor,
}


def create_extractor(kind: str, **options) -> DescriptorExtractor:
    """Build an extractor by name ("dlib" or "azure") with backend options"""
    try:
        extractor_class = EXTRACTORS[kind.lower()]
    except (KeyError, AttributeError):
        raise ValidationError(
            f"Unknown extractor '{kind}', expected one of {sorted(EXTRACTORS)}"
        ) from None
    return extractor_class(**options)


__all__ = [
    "DescriptorExtractor",
    "DlibDescriptorExtractor",
    "AzureLandmarkExtractor",
    "create_extractor",
    "EXTRACTORS",
    "MIN_FRAME_SIZE",
]
