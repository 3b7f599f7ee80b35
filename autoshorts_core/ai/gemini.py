"""Google Gemini media analysis client."""

import logging
import time
from pathlib import Path
from typing import Optional

import httpx
from google import genai
from google.genai import errors, types

from autoshorts_core.ai.base import RESPONSE_SCHEMA, AIClient, AIResponse
from autoshorts_core.ai.keys import ApiKey
from autoshorts_core.errors import (
    AnalysisRequestError,
    CredentialRejected,
    QuotaExceeded,
    TransientAnalysisError,
)


logger = logging.getLogger(__name__)

USER_PROMPT = "Analyze this video chunk and list the best moments for shorts."


class GeminiClient(AIClient):
    """
    Google Gemini client for video chunks.

    Uploads the chunk through the Files API, waits until it is active and
    asks for moments as schema-constrained JSON.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: float = 0.4,
        upload_timeout: int = 120,
        poll_interval: float = 2.0,
    ):
        super().__init__(model)
        self.temperature = temperature
        self.upload_timeout = upload_timeout
        self.poll_interval = poll_interval

    def get_default_model(self) -> str:
        """Get the default Gemini model."""
        return "gemini-2.5-flash"

    def _client(self, api_key: ApiKey, timeout: int) -> genai.Client:
        return genai.Client(
            api_key=api_key.value,
            http_options=types.HttpOptions(timeout=timeout * 1000),
        )

    def analyze_media(
        self,
        media_path: Path,
        prompt: str,
        api_key: ApiKey,
        timeout: int = 600,
    ) -> AIResponse:
        """Upload ``media_path`` and return the model's JSON answer."""
        client = self._client(api_key, timeout)
        uploaded = None
        try:
            uploaded = self._upload(client, media_path)
            response = client.models.generate_content(
                model=self.get_model(),
                contents=[uploaded, USER_PROMPT],
                config=types.GenerateContentConfig(
                    system_instruction=prompt,
                    temperature=self.temperature,
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                    media_resolution=types.MediaResolution.MEDIA_RESOLUTION_LOW,
                ),
            )
        except errors.APIError as e:
            raise self._map_api_error(e, api_key) from e
        except httpx.TimeoutException as e:
            raise TransientAnalysisError(f"request timed out after {timeout}s") from e
        except httpx.TransportError as e:
            raise TransientAnalysisError(f"network error: {e}") from e
        finally:
            if uploaded is not None:
                self._delete(client, uploaded)

        text = response.text or ""
        tokens = 0
        if response.usage_metadata is not None:
            tokens = response.usage_metadata.total_token_count or 0

        return AIResponse(content=text, model=self.get_model(), tokens_used=tokens, raw=response)

    def _upload(self, client: genai.Client, media_path: Path) -> types.File:
        uploaded = client.files.upload(file=str(media_path))
        deadline = time.monotonic() + self.upload_timeout

        while uploaded.state != types.FileState.ACTIVE:
            if uploaded.state == types.FileState.FAILED:
                raise TransientAnalysisError(f"upload of {media_path.name} failed processing")
            if time.monotonic() > deadline:
                raise TransientAnalysisError(
                    f"upload of {media_path.name} not active after {self.upload_timeout}s"
                )
            time.sleep(self.poll_interval)
            uploaded = client.files.get(name=uploaded.name)

        logger.debug("Uploaded %s as %s", media_path.name, uploaded.name)
        return uploaded

    def _delete(self, client: genai.Client, uploaded: types.File) -> None:
        try:
            client.files.delete(name=uploaded.name)
        except (errors.APIError, httpx.HTTPError) as e:
            logger.debug("Could not delete uploaded file %s: %s", uploaded.name, e)

    @staticmethod
    def _map_api_error(e: errors.APIError, api_key: ApiKey) -> Exception:
        message = e.message or str(e)
        status = (e.status or "").upper()

        if e.code == 429 or status == "RESOURCE_EXHAUSTED" or "quota" in message.lower():
            return QuotaExceeded(f"{api_key.name}: {message}")
        if e.code in (401, 403) or status in ("UNAUTHENTICATED", "PERMISSION_DENIED"):
            return CredentialRejected(f"{api_key.name}: {message}")
        if e.code == 400 and "api key" in message.lower():
            return CredentialRejected(f"{api_key.name}: {message}")
        if isinstance(e, errors.ServerError) or e.code in (408, 499):
            return TransientAnalysisError(f"service error {e.code}: {message}")
        return AnalysisRequestError(f"request rejected ({e.code}): {message}")
