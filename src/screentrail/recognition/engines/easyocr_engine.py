"""EasyOCR adapter (secondary engine: slower, more robust on noisy frames)."""

import logging
import threading

from typing import Any

import numpy as np

from screentrail.models.recognition import BoundingRegion, RecognitionResult
from screentrail.recognition.base import EngineError, RecognitionEngine
from screentrail.utils.images import to_pil_image

logger = logging.getLogger(__name__)


class EasyOCREngine(RecognitionEngine):
    """
    Line-level recognition through ``easyocr.Reader.readtext``.

    The reader loads neural network weights on first use, so it is created
    lazily and shared across calls.
    """

    name = "easyocr"

    def __init__(self, language: str = "en", gpu: bool = False) -> None:
        super().__init__(language)
        self._gpu = gpu
        self._reader: Any = None
        self._reader_lock = threading.Lock()

    def supports_language(self, language: str) -> bool:
        # EasyOCR ships models for most scripts; the reader validates on load
        return True

    def _get_reader(self) -> Any:
        with self._reader_lock:
            if self._reader is None:
                try:
                    import easyocr
                except ImportError as e:
                    raise EngineError(
                        "easyocr is not installed (pip install screentrail[ocr])",
                        engine=self.name,
                    ) from e
                logger.info(f"Loading EasyOCR reader for language '{self.language}'")
                self._reader = easyocr.Reader(
                    [self.language], gpu=self._gpu, verbose=False
                )
            return self._reader

    def _recognize(self, image: Any) -> list[RecognitionResult]:
        reader = self._get_reader()
        pixels = np.asarray(to_pil_image(image))

        try:
            detections = reader.readtext(pixels, paragraph=False)
        except (RuntimeError, ValueError) as e:
            raise EngineError(f"EasyOCR failed: {e}", engine=self.name) from e

        results: list[RecognitionResult] = []
        for polygon, text, conf in detections:
            text = str(text).strip()
            if not text:
                continue
            xs = [float(point[0]) for point in polygon]
            ys = [float(point[1]) for point in polygon]
            results.append(
                RecognitionResult(
                    text=text,
                    bounding_region=BoundingRegion(
                        x=min(xs),
                        y=min(ys),
                        width=max(xs) - min(xs),
                        height=max(ys) - min(ys),
                    ),
                    confidence=max(0.0, min(1.0, float(conf))),
                    language=self.language,
                )
            )

        logger.debug(f"EasyOCR recognized {len(results)} regions")
        return results
