"""Gemini-backed auto-tagging and background removal for clothing photos.

Both capabilities are best effort: a missing API key, a network error or an
unparseable answer yields ``None`` and the caller keeps its form editable.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Any, Callable, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field, ValidationError

from closet_app.config import DEFAULT_BACKGROUND_MODEL, DEFAULT_TAGGING_MODEL
from closet_app.logging_config import get_logger, log_event
from logic.item_form import AutoTagResult
from models.taxonomy import COLORS, CategoryL1

LOGGER = get_logger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")

TAGGING_PROMPT = (
    "Analyze this clothing item.\n"
    f"Identify the main category ({', '.join(c.value for c in CategoryL1)}).\n"
    "Identify the specific sub-category (e.g. T-Shirt, Jeans, Sneakers).\n"
    f"Identify the primary color, one of: {', '.join(COLORS)}.\n"
    "Identify the season (Warm, Cold, All).\n"
    "Return JSON with keys categoryL1, categoryL2, color, season."
)
BACKGROUND_PROMPT = (
    "Isolate the clothing item in this image. Keep the item exactly as it is, "
    "but replace the background with pure white color."
)


class _TagPayload(BaseModel):
    categoryL1: str = Field(min_length=1)
    categoryL2: str = ""
    color: str = ""
    season: str = ""


def strip_data_url(image: str) -> str:
    """Drop a ``data:image/...;base64,`` prefix if present."""

    return _DATA_URL_PREFIX.sub("", image)


def _image_part(image: str) -> dict:
    return {"mime_type": "image/png", "data": base64.b64decode(strip_data_url(image))}


class GeminiClothingTagger:
    """Wraps the two Gemini calls used by the add-item flow."""

    def __init__(
        self,
        api_key: Optional[str],
        tagging_model: str = DEFAULT_TAGGING_MODEL,
        background_model: str = DEFAULT_BACKGROUND_MODEL,
        model_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.api_key = api_key
        self.tagging_model = tagging_model
        self.background_model = background_model
        self._model_factory = model_factory or genai.GenerativeModel
        if api_key:
            genai.configure(api_key=api_key)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def analyze_clothing_image(self, image: str) -> Optional[AutoTagResult]:
        """Return a best-effort guess of category, subtype, colour and season."""

        if not self.enabled:
            LOGGER.warning("No API key configured; skipping clothing analysis")
            return None
        try:
            model = self._model_factory(self.tagging_model)
            response = model.generate_content(
                [_image_part(image), TAGGING_PROMPT],
                generation_config={"response_mime_type": "application/json"},
            )
            text = response.text
            if not text:
                return None
            payload = _TagPayload.model_validate_json(text)
        except ValidationError as exc:
            log_event(LOGGER, logging.WARNING, "tagging_response_invalid", errors=exc.errors())
            return None
        except Exception as exc:  # noqa: BLE001
            log_event(LOGGER, logging.ERROR, "tagging_failed", error=str(exc))
            return None
        return AutoTagResult(
            category_l1=payload.categoryL1,
            category_l2=payload.categoryL2,
            color=payload.color,
            season=payload.season,
        )

    def remove_background(self, image: str) -> Optional[str]:
        """Return the image re-encoded as a PNG data URL on a white background."""

        if not self.enabled:
            return None
        try:
            model = self._model_factory(self.background_model)
            response = model.generate_content([_image_part(image), BACKGROUND_PROMPT])
            for candidate in response.candidates[:1]:
                for part in candidate.content.parts:
                    inline = getattr(part, "inline_data", None)
                    if inline is not None and inline.data:
                        encoded = base64.b64encode(inline.data).decode("ascii")
                        return f"data:image/png;base64,{encoded}"
        except Exception as exc:  # noqa: BLE001
            log_event(LOGGER, logging.ERROR, "background_removal_failed", error=str(exc))
            return None
        return None


__all__ = ["BACKGROUND_PROMPT", "GeminiClothingTagger", "TAGGING_PROMPT", "strip_data_url"]
