"""Base AI client and common types."""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from autoshorts_core.ai.keys import ApiKey


SYSTEM_PROMPT = """You are a professional video editor assistant. Your task is to analyze the provided video chunk and identify the best moments suitable for vertical short-form videos.

Identify moments that fit these categories:
- Funny
- Interesting
- Incredible Play
- Cinematic
- Other

Constraints:
1. Duration: {min_seconds} seconds to {max_seconds} seconds.
2. Provide a brief description.
3. Use timestamp format "HH:MM:SS", relative to the start of this chunk.
4. Include any memorable dialogue in the 'dialogue' field.

If no suitable moments are found, return an empty array in the moments field."""


RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "moments": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "start_time": {"type": "STRING"},
                    "end_time": {"type": "STRING"},
                    "category": {
                        "type": "STRING",
                        "enum": ["Funny", "Interesting", "Incredible Play", "Cinematic", "Other"],
                    },
                    "description": {"type": "STRING"},
                    "dialogue": {"type": "ARRAY", "items": {"type": "STRING"}},
                },
                "required": ["start_time", "end_time", "category", "description"],
            },
        },
    },
    "required": ["moments"],
}


@dataclass
class AIResponse:
    """Response from an AI provider."""

    content: str
    model: str
    tokens_used: int = 0
    raw: Any = None  # Raw response for debugging

    def __str__(self) -> str:
        return self.content


class AIClient(ABC):
    """
    Abstract base class for media analysis clients.

    Clients are stateless with respect to credentials: the key is passed per
    request so that a shared pool can rotate keys between calls.
    """

    def __init__(self, model: Optional[str] = None):
        self.model = model

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        pass

    @abstractmethod
    def analyze_media(
        self,
        media_path: Path,
        prompt: str,
        api_key: ApiKey,
        timeout: int = 600,
    ) -> AIResponse:
        """
        Analyze a media file.

        Raises:
            QuotaExceeded: Key is out of quota or rate limited
            CredentialRejected: Key is invalid or forbidden
            TransientAnalysisError: Timeout or server-side failure
            AnalysisRequestError: Request rejected for a non-credential reason
        """
        pass

    def get_model(self) -> str:
        """Get the configured model or default."""
        return self.model or self.get_default_model()

    def format_moments_prompt(self, min_seconds: float = 10, max_seconds: float = 90) -> str:
        """Format the system prompt for highlight analysis."""
        return SYSTEM_PROMPT.format(min_seconds=f"{min_seconds:g}", max_seconds=f"{max_seconds:g}")

    def parse_json_response(self, response: str) -> Any:
        """Safely parse JSON from AI response."""
        # Try direct parse first
        try:
            return json.loads(response)
        except json.JSONDecodeError:
            # Try to extract JSON from markdown code blocks
            match = re.search(r"```(?:json)?\s*(\{.*?\}|\[.*?\])\s*```", response, re.DOTALL)
            if match:
                try:
                    return json.loads(match.group(1))
                except json.JSONDecodeError:
                    pass
            # Try to find any JSON-like structure
            match = re.search(r"\{.*\}|\[.*\]", response, re.DOTALL)
            if match:
                try:
                    return json.loads(match.group(0))
                except json.JSONDecodeError:
                    pass
        return None
