"""
Recognition engine registry.

Provides a factory to instantiate engines by their configured name.
"""

from typing import Any

from ..base import RecognitionEngine
from .easyocr_engine import EasyOCREngine
from .tesseract_engine import TesseractEngine

__all__ = [
    "AVAILABLE_ENGINES",
    "EasyOCREngine",
    "TesseractEngine",
    "get_engine",
]

AVAILABLE_ENGINES: dict[str, type[RecognitionEngine]] = {
    "tesseract": TesseractEngine,
    "easyocr": EasyOCREngine,
}


def get_engine(name: str, **kwargs: Any) -> RecognitionEngine:
    """
    Factory function to get a recognition engine by name.

    Args:
        name: Engine name (e.g., "tesseract", "easyocr")
        **kwargs: Engine-specific initialization parameters

    Returns:
        RecognitionEngine instance

    Raises:
        ValueError: If engine name is not recognized
    """
    if name not in AVAILABLE_ENGINES:
        raise ValueError(
            f"Unknown engine: {name}. Available: {list(AVAILABLE_ENGINES.keys())}"
        )
    return AVAILABLE_ENGINES[name](**kwargs)
