"""Tesseract adapter (primary engine: fast, good on clean UI text)."""

import logging

from typing import Any

from screentrail.models.recognition import BoundingRegion, RecognitionResult
from screentrail.recognition.base import EngineError, RecognitionEngine
from screentrail.utils.images import to_pil_image

logger = logging.getLogger(__name__)

# ISO 639-1 codes to Tesseract traineddata names
_TESSERACT_LANGUAGES = {
    "en": "eng",
    "de": "deu",
    "fr": "fra",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "nl": "nld",
    "ja": "jpn",
    "zh": "chi_sim",
    "ko": "kor",
    "ru": "rus",
}


class TesseractEngine(RecognitionEngine):
    """Word-level recognition through ``pytesseract.image_to_data``."""

    name = "tesseract"

    def supports_language(self, language: str) -> bool:
        return language in _TESSERACT_LANGUAGES

    def _recognize(self, image: Any) -> list[RecognitionResult]:
        try:
            import pytesseract
        except ImportError as e:
            raise EngineError(
                "pytesseract is not installed (pip install screentrail[ocr])",
                engine=self.name,
            ) from e

        pil_image = to_pil_image(image)
        lang = _TESSERACT_LANGUAGES.get(self.language, "eng")

        try:
            data: dict[str, list[Any]] = pytesseract.image_to_data(
                pil_image, lang=lang, output_type=pytesseract.Output.DICT
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise EngineError(f"Tesseract failed: {e}", engine=self.name) from e

        results: list[RecognitionResult] = []
        for i, raw_text in enumerate(data.get("text", [])):
            text = str(raw_text or "").strip()
            conf = float(data["conf"][i])
            # -1 marks layout rows (blocks, lines) rather than words
            if not text or conf < 0:
                continue
            results.append(
                RecognitionResult(
                    text=text,
                    bounding_region=BoundingRegion(
                        x=float(data["left"][i]),
                        y=float(data["top"][i]),
                        width=float(data["width"][i]),
                        height=float(data["height"][i]),
                    ),
                    confidence=max(0.0, min(1.0, conf / 100.0)),
                    language=self.language,
                )
            )

        logger.debug(f"Tesseract recognized {len(results)} regions")
        return results
