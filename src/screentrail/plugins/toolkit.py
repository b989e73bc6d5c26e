"""
Base enhancement toolkit.

Generic heuristics shared by content plugins: label/value pairing by
spatial proximity, interactive element detection, and constructors for
enhanced results and structured elements with unique ids. Plugins hold a
toolkit instance and call into it; the toolkit is never registered itself.
"""

import logging
import math

from collections.abc import Sequence
from typing import NamedTuple

from screentrail.constants import ToolkitConstants as TC
from screentrail.models.recognition import BoundingRegion, RecognitionResult
from screentrail.models.structured import (
    EnhancedResult,
    StructuredElement,
    StructuredValue,
    UIElement,
    new_element_id,
)
from screentrail.utils.geometry import union_region

logger = logging.getLogger(__name__)

_BUTTON_KEYWORDS = frozenset(TC.BUTTON_KEYWORDS)


class FieldPair(NamedTuple):
    """A label and the value it describes."""

    label: RecognitionResult
    value: RecognitionResult

    @property
    def confidence(self) -> float:
        return min(self.label.confidence, self.value.confidence)

    @property
    def label_text(self) -> str:
        return self.label.text.strip().rstrip(":").strip()


class EnhancementToolkit:
    """
    Shared heuristics composed into plugins.

    Args:
        owner_id: Prefix for generated element ids (usually the plugin id)
        max_pairing_distance: Largest label-to-value center distance in pixels
    """

    def __init__(
        self,
        owner_id: str = "toolkit",
        max_pairing_distance: float = TC.MAX_PAIRING_DISTANCE,
    ) -> None:
        self.owner_id = owner_id
        self.max_pairing_distance = max_pairing_distance

    # ========================================================================
    # Text Roles
    # ========================================================================

    @staticmethod
    def is_ui_label(text: str) -> bool:
        """A label is short text ending in a colon, e.g. ``Email:``."""
        stripped = text.strip()
        return (
            len(stripped) > 1
            and stripped.endswith(":")
            and "\n" not in stripped
        )

    @classmethod
    def is_field_value(cls, text: str) -> bool:
        return bool(text.strip()) and not cls.is_ui_label(text)

    # ========================================================================
    # Label / Value Pairing
    # ========================================================================

    def extract_field_pairs(
        self, results: Sequence[RecognitionResult]
    ) -> list[FieldPair]:
        """
        Pair each label with its nearest value to the right or below.

        Labels are processed in input order and each value is claimed by at
        most one label. Candidates above or to the left of the label are
        never considered, and neither are other labels.

        Returns:
            Pairs in label order; labels without a value are omitted
        """
        pairs: list[FieldPair] = []
        claimed: set[int] = set()

        for label in results:
            if not self.is_ui_label(label.text):
                continue

            best_index = self._nearest_value_index(label, results, claimed)
            if best_index is None:
                continue

            claimed.add(best_index)
            pairs.append(FieldPair(label=label, value=results[best_index]))

        logger.debug(f"Paired {len(pairs)} label/value fields")
        return pairs

    def _nearest_value_index(
        self,
        label: RecognitionResult,
        results: Sequence[RecognitionResult],
        claimed: set[int],
    ) -> int | None:
        lx, ly = label.bounding_region.center
        best_index: int | None = None
        best_distance = math.inf

        for index, candidate in enumerate(results):
            if index in claimed or candidate is label:
                continue
            if not self.is_field_value(candidate.text):
                continue

            cx, cy = candidate.bounding_region.center
            right_of = cx > lx and abs(cy - ly) <= max(
                TC.ROW_TOLERANCE, label.bounding_region.height
            )
            below = cy > ly and (
                abs(cx - lx) <= TC.COLUMN_TOLERANCE
                or candidate.bounding_region.x <= lx <= candidate.bounding_region.right
                or label.bounding_region.x <= cx <= label.bounding_region.right
            )
            if not (right_of or below):
                continue

            distance = math.hypot(cx - lx, cy - ly)
            if distance <= self.max_pairing_distance and distance < best_distance:
                best_distance = distance
                best_index = index

        return best_index

    # ========================================================================
    # Interactive Elements
    # ========================================================================

    @staticmethod
    def is_button_text(text: str) -> bool:
        stripped = text.strip()
        if stripped in _BUTTON_KEYWORDS:
            return True
        return (
            0 < len(stripped) <= TC.MAX_BUTTON_LENGTH
            and " " not in stripped
            and any(ch.isalpha() for ch in stripped)
            and stripped.upper() == stripped
        )

    def detect_buttons(self, results: Sequence[RecognitionResult]) -> list[UIElement]:
        """Generic button detection: known action words or short all-caps words."""
        return [
            UIElement(
                type="button",
                text=r.text.strip(),
                bounding_region=r.bounding_region,
                confidence=r.confidence,
            )
            for r in results
            if self.is_button_text(r.text)
        ]

    # ========================================================================
    # Constructors
    # ========================================================================

    def create_structured_element(
        self,
        element_type: str,
        value: str,
        metadata: dict[str, StructuredValue] | None = None,
        bounding_region: BoundingRegion | None = None,
    ) -> StructuredElement:
        return StructuredElement(
            id=new_element_id(f"{self.owner_id}_{element_type}"),
            type=element_type,
            value=value,
            metadata=metadata or {},
            bounding_region=bounding_region,
            plugin_id=self.owner_id,
        )

    def create_enhanced_result(
        self,
        original: RecognitionResult,
        semantic_type: str,
        structured_data: dict[str, StructuredValue] | None = None,
        relationships: list[str] | None = None,
    ) -> EnhancedResult:
        return EnhancedResult(
            original_result=original,
            semantic_type=semantic_type,
            structured_data=structured_data or {},
            relationships=relationships or [],
            plugin_id=self.owner_id,
        )

    def field_pair_element(
        self, pair: FieldPair, element_type: str = "field"
    ) -> StructuredElement:
        """Structured element for a label/value pair; confidence is the pair minimum."""
        return self.create_structured_element(
            element_type,
            pair.value.text.strip(),
            metadata={"label": pair.label_text, "confidence": pair.confidence},
            bounding_region=union_region(
                [pair.label.bounding_region, pair.value.bounding_region]
            ),
        )

    # ========================================================================
    # Generic Passes
    # ========================================================================

    def enhance_fields_and_buttons(
        self, results: Sequence[RecognitionResult]
    ) -> list[EnhancedResult]:
        """Tag paired labels/values and buttons."""
        enhanced: list[EnhancedResult] = []

        for pair in self.extract_field_pairs(results):
            enhanced.append(
                self.create_enhanced_result(
                    pair.label, "field_label", {"paired_with": pair.value.text}
                )
            )
            enhanced.append(
                self.create_enhanced_result(
                    pair.value, "field_value", {"label": pair.label_text}
                )
            )

        for result in results:
            if self.is_button_text(result.text):
                enhanced.append(
                    self.create_enhanced_result(
                        result,
                        "button",
                        {"text": result.text.strip(), "confidence": result.confidence},
                    )
                )

        return enhanced

    def extract_fields(
        self, results: Sequence[RecognitionResult]
    ) -> list[StructuredElement]:
        return [self.field_pair_element(p) for p in self.extract_field_pairs(results)]
