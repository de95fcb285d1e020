from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from monetiq.config import settings

logger = logging.getLogger("ads.image_client")


class ImageGenerationError(RuntimeError):
    def __init__(self, message: str, finish_reason: Optional[str] = None):
        super().__init__(message)
        self.finish_reason = finish_reason


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"
    meta: Dict[str, Any] = field(default_factory=dict)


def _extract_image(obj: Dict[str, Any]) -> GeneratedImage:
    candidates = obj.get("candidates") or []
    if not candidates:
        feedback = obj.get("promptFeedback") or {}
        raise ImageGenerationError("No candidates returned from Gemini", feedback.get("blockReason"))

    candidate = candidates[0] or {}
    finish_reason = candidate.get("finishReason")
    parts = (candidate.get("content") or {}).get("parts") or []

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            data = base64.b64decode(inline["data"])
            return GeneratedImage(data=data, mime_type=mime, meta={"mime_type": mime, "size": len(data)})
        if part.get("text"):
            logger.info("Gemini response text: %s", part["text"][:300])

    raise ImageGenerationError("No image data found in Gemini response", finish_reason)


class GeminiImageClient:
    """Gemini native image generation over REST. One reference image at most."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY is not set.")
        self.base = settings.GEMINI_BASE_URL.rstrip("/")
        self.model = model or settings.GEMINI_IMAGE_MODEL
        self.timeout = float(settings.GEMINI_TIMEOUT_SECONDS)
        self.transport = transport

    async def generate(self, *, prompt: str, reference_image_url: Optional[str] = None) -> GeneratedImage:
        parts: list[Dict[str, Any]] = []

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport, follow_redirects=True) as client:
            if reference_image_url:
                ref = await client.get(reference_image_url)
                if ref.status_code >= 400:
                    raise ImageGenerationError(f"reference image fetch failed {ref.status_code}")
                mime = (ref.headers.get("content-type") or "image/png").split(";")[0].strip()
                parts.append({"inlineData": {"mimeType": mime, "data": base64.b64encode(ref.content).decode("ascii")}})
            parts.append({"text": prompt})

            r = await client.post(
                f"{self.base}/models/{self.model}:generateContent",
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                json={
                    "contents": [{"role": "user", "parts": parts}],
                    "generationConfig": {"responseModalities": ["IMAGE", "TEXT"]},
                },
            )

        if r.status_code >= 400:
            raise ImageGenerationError(f"Gemini API error {r.status_code}: {r.text[:300]}")

        image = _extract_image(r.json())
        image.meta["model"] = self.model
        return image
