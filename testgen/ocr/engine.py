"""
OCR Engine - Extracts text lines from screenshot bytes
"""
from abc import ABC, abstractmethod
from typing import List, Optional
import logging

import easyocr

from ..config import settings
from ..exceptions import OcrFailure


logger = logging.getLogger(__name__)


class OcrEngine(ABC):
    """Recognizes the text of one image. May fail per image."""

    @abstractmethod
    def recognize(self, image: bytes) -> str:
        """
        Extract text from an image.

        Args:
            image: Raw image bytes

        Returns:
            Recognized text, one detected line per text line

        Raises:
            OcrFailure: when the image cannot be read or recognized
        """
        pass


class EasyOcrEngine(OcrEngine):
    """
    EasyOCR-backed engine. The reader loads its detection and recognition
    models on first use and is reused afterwards.
    """

    def __init__(self, languages: Optional[List[str]] = None, gpu: Optional[bool] = None):
        self.languages = languages or settings.OCR_LANGUAGES
        self.gpu = settings.OCR_GPU if gpu is None else gpu
        self._reader: Optional[easyocr.Reader] = None

    @property
    def reader(self) -> easyocr.Reader:
        if self._reader is None:
            logger.info(f"Loading EasyOCR reader for {self.languages} (gpu={self.gpu})")
            self._reader = easyocr.Reader(self.languages, gpu=self.gpu)
        return self._reader

    def recognize(self, image: bytes) -> str:
        if not image:
            raise OcrFailure("Empty image")
        try:
            lines = self.reader.readtext(image, detail=0, paragraph=False)
        except Exception as e:
            raise OcrFailure(f"EasyOCR could not read image: {e}") from e
        return "\n".join(line.strip() for line in lines if line and line.strip())
