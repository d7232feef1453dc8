"""
Client for the external food image classifier.

The classifier accepts a multipart upload in the ``file`` field and answers
with ``{"detected_food": "<label>"}``.
"""
import mimetypes
from pathlib import Path
from typing import Optional

import httpx
from loguru import logger


class ClassifierError(Exception):
    """The classifier could not be reached or returned an unusable answer."""


class ImageClassifier:
    def __init__(self, url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def classify(self, image_path: Path) -> str:
        """Upload ``image_path`` and return the detected food label."""
        content_type = mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"
        try:
            with image_path.open("rb") as handle:
                response = await self._client.post(
                    self.url,
                    files={"file": (image_path.name, handle, content_type)},
                    timeout=self.timeout,
                )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise ClassifierError(f"Classifier timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ClassifierError(
                f"Classifier returned {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise ClassifierError(f"Classifier request failed: {e}") from e
        except ValueError as e:
            raise ClassifierError(f"Classifier returned invalid JSON: {e}") from e

        detected = payload.get("detected_food") if isinstance(payload, dict) else None
        if not isinstance(detected, str) or not detected.strip():
            raise ClassifierError("Classifier response did not include detected_food")

        logger.info(f"Classifier detected '{detected}' for {image_path.name}")
        return detected.strip()

    async def aclose(self) -> None:
        await self._client.aclose()
