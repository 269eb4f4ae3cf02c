"""Structured extraction through a chat-completion model."""

import json
import logging
from typing import Any, Optional, Protocol

from openai import OpenAI, OpenAIError

from enclave.config import LLMConfig
from enclave.errors import ExtractionError, ImportValidationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You convert tabletop game records into JSON. Reply with a single JSON "
    "object that follows the provided schema. Use null for anything the text "
    "does not state."
)


class Extractor(Protocol):
    """Anything that turns free text into JSON shaped by a schema.

    The returned value is untrusted; callers validate it themselves.
    """

    def extract(self, text: str, schema: dict) -> Any:
        ...


class OpenAIExtractor:
    """Extractor backed by the OpenAI chat completions API."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        timeout: float = 120.0,
        temperature: float = 0.0,
    ):
        """Initialize the OpenAI client.

        Args:
            model: Model name to use (e.g., gpt-4o-mini, gpt-4o)
            api_key: OpenAI API key
            timeout: Request timeout in seconds
            temperature: Sampling temperature
        """
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self._client = OpenAI(api_key=api_key, timeout=timeout) if api_key else None

    @classmethod
    def from_config(cls, config: LLMConfig) -> "OpenAIExtractor":
        return cls(
            model=config.model,
            api_key=config.api_key,
            timeout=config.timeout,
            temperature=config.temperature,
        )

    def is_available(self) -> bool:
        return self._client is not None

    def extract(self, text: str, schema: dict) -> Any:
        """Ask the model for JSON matching ``schema``.

        Raises:
            ExtractionError: No API key, or the API call failed
            ImportValidationError: The reply was not JSON
        """
        if self._client is None:
            raise ExtractionError("Import is unavailable: no language model API key is configured")

        title = schema.get("title", "record")
        prompt = (
            f"Parse the following text and structure it as a {title} JSON object.\n\n"
            f"Text:\n{text}\n\nJSON output:"
        )
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": title, "schema": schema, "strict": False},
                },
            )
        except OpenAIError as e:
            logger.error("Extraction request failed: %s", e)
            raise ExtractionError(f"Language model request failed: {e}") from e

        content = response.choices[0].message.content or ""
        logger.debug("Extraction used %s tokens", response.usage.total_tokens if response.usage else "?")
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Model returned non-JSON output: %.200s", content)
            raise ImportValidationError(f"Model output was not valid JSON: {e}") from e
