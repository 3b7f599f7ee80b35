"""AI provider clients."""

from autoshorts_core.ai.base import AIClient, AIResponse
from autoshorts_core.ai.keys import ApiKey, KeyPool
from autoshorts_core.ai.gemini import GeminiClient

__all__ = ["AIClient", "AIResponse", "ApiKey", "KeyPool", "GeminiClient"]
