"""
Unstructured.io element JSON → ProcessedElement.

Never raises: malformed payloads degrade to partial or empty output with a
warning, so a single bad element cannot fail a whole document.
"""

from __future__ import annotations

import logging
from typing import Any

from knowledge_providers.preprocess.types import BoundingBox, ElementType, ProcessedElement

logger = logging.getLogger(__name__)

_ELEMENT_TYPE_MAP: dict[str, ElementType] = {
    "Title":         ElementType.TITLE,
    "Header":        ElementType.HEADER,
    "Footer":        ElementType.FOOTER,
    "NarrativeText": ElementType.NARRATIVE_TEXT,
    "ListItem":      ElementType.LIST_ITEM,
    "Table":         ElementType.TABLE,
    "Image":         ElementType.IMAGE,
    "Formula":       ElementType.FORMULA,
    "Text":          ElementType.TEXT,
}


def map_element_type(api_type: Any) -> ElementType:
    """Unknown or missing vendor tags fall back to ElementType.TEXT."""
    if not isinstance(api_type, str):
        return ElementType.TEXT
    return _ELEMENT_TYPE_MAP.get(api_type, ElementType.TEXT)


def map_coordinates(coords: Any, page: int | None = None) -> BoundingBox | None:
    """
    Collapse the vendor's point list into an axis-aligned bounding box.

    Unstructured returns ``points`` as [[x1, y1], [x2, y1], [x2, y2], [x1, y2]],
    but any polygon works: the box is the min/max over all points.
    """
    if not isinstance(coords, dict):
        return None
    points = coords.get("points")
    if not isinstance(points, (list, tuple)) or not points:
        return None

    try:
        xs = [float(p[0]) for p in points]
        ys = [float(p[1]) for p in points]
    except (TypeError, ValueError, IndexError, KeyError) as exc:
        logger.warning("Failed to parse coordinates | coords=%r error=%s", coords, exc)
        return None

    return BoundingBox(
        x1=min(xs),
        y1=min(ys),
        x2=max(xs),
        y2=max(ys),
        page=page if isinstance(page, int) and page > 0 else 1,
    )


def transform_response(api_response: Any) -> list[ProcessedElement]:
    """Map the API's element list to ProcessedElements, in order."""
    if not isinstance(api_response, list):
        logger.warning(
            "Invalid API response format, expected array | got=%s",
            type(api_response).__name__,
        )
        return []

    elements: list[ProcessedElement] = []
    for index, item in enumerate(api_response):
        if not isinstance(item, dict):
            logger.warning("Skipping malformed element | index=%d got=%s", index, type(item).__name__)
            continue

        metadata = item.get("metadata") if isinstance(item.get("metadata"), dict) else {}
        page_number = metadata.get("page_number")
        if not isinstance(page_number, int):
            page_number = None

        text = item.get("text")

        elements.append(ProcessedElement(
            id=str(item.get("element_id") or f"element_{index}"),
            type=map_element_type(item.get("type")),
            text=text if isinstance(text, str) else "",
            coordinates=map_coordinates(item.get("coordinates"), page_number),
            page_number=page_number,
            confidence=1.0,
            metadata=dict(metadata),
        ))

    return elements
