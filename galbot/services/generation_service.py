"""Text and image generation adapters for GalBot.

Text goes to Together's OpenAI-compatible completions endpoint and images
to OpenAI's image endpoint. Both use the synchronous ``openai`` client in a
worker thread and normalize every failure into ``UpstreamError``.
"""

import asyncio
import hashlib
import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, OpenAI

from galbot.config import AppConfig
from galbot.exceptions import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextModelParams:
    """Sampling parameters sent with every text completion."""

    temperature: float = 0.7
    top_p: float = 0.7
    top_k: int = 50
    max_tokens: int = 15
    repetition_penalty: float = 1.0


DEFAULT_TEXT_PARAMS = TextModelParams()


def _prompt_hash(prompt: str) -> str:
    return hashlib.sha256(prompt.encode()).hexdigest()[:16]


class GenerationClient:
    """Stateless adapter over the text- and image-generation APIs."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._text_client: Optional[OpenAI] = None
        self._image_client: Optional[OpenAI] = None

    def _get_text_client(self) -> OpenAI:
        """Get or create the OpenAI-compatible client for Together."""
        if self._text_client is None:
            self._text_client = OpenAI(
                api_key=self.config.together_api_key,
                base_url=self.config.together_base_url,
                timeout=self.config.api_request_timeout,
                max_retries=0,
            )
        return self._text_client

    def _get_image_client(self) -> OpenAI:
        """Get or create the OpenAI client for image generation."""
        if self._image_client is None:
            self._image_client = OpenAI(
                api_key=self.config.openai_api_key,
                timeout=self.config.api_request_timeout,
                max_retries=0,
            )
        return self._image_client

    @staticmethod
    def _to_upstream_error(error: Exception, operation: str) -> UpstreamError:
        """Map an openai SDK error onto UpstreamError."""
        if isinstance(error, APITimeoutError):
            return UpstreamError(f"{operation} timed out")
        if isinstance(error, APIConnectionError):
            return UpstreamError(f"{operation} could not reach the API")
        if isinstance(error, APIStatusError):
            return UpstreamError(
                f"{operation} failed: {error.message}",
                status_code=error.status_code,
            )
        return UpstreamError(f"{operation} failed: {error}")

    async def generate_text(
        self,
        prompt: str,
        model_params: Optional[TextModelParams] = None,
    ) -> str:
        """Generate a completion for ``prompt`` and return its text.

        Args:
            prompt: The prompt to complete.
            model_params: Overrides for the fixed sampling parameters.

        Returns:
            Text of the first completion choice.

        Raises:
            UpstreamError: On network errors, non-2xx statuses or a response
                without a usable first choice.
        """
        if not prompt or not prompt.strip():
            raise UpstreamError("Text prompt cannot be empty")

        params = model_params or DEFAULT_TEXT_PARAMS
        prompt_hash = _prompt_hash(prompt)

        try:
            response = await asyncio.to_thread(self._execute_text_generation, prompt, params)
        except APIError as e:
            logger.error(
                "Text generation failed (prompt_hash=%s): %s", prompt_hash, e, exc_info=True
            )
            raise self._to_upstream_error(e, "Text generation") from e

        try:
            text = response.choices[0].text
        except (AttributeError, IndexError, TypeError) as e:
            logger.error("Malformed text generation response (prompt_hash=%s)", prompt_hash)
            raise UpstreamError("Text generation returned no choices") from e

        if text is None:
            raise UpstreamError("Text generation returned an empty choice")

        logger.info("Text generated (prompt_hash=%s, length=%d)", prompt_hash, len(text))
        return text

    def _execute_text_generation(self, prompt: str, params: TextModelParams) -> Any:
        """Execute the completion call (synchronous)."""
        client = self._get_text_client()
        sampling = asdict(params)
        return client.completions.create(
            model=self.config.text_model_name,
            prompt=prompt,
            temperature=sampling.pop("temperature"),
            top_p=sampling.pop("top_p"),
            max_tokens=sampling.pop("max_tokens"),
            # Together-specific sampling knobs
            extra_body=sampling,
        )

    async def generate_image(self, prompt: str) -> str:
        """Generate exactly one image and return its ephemeral URL.

        Raises:
            UpstreamError: On network errors, non-2xx statuses or a response
                without an image URL.
        """
        if not prompt or not prompt.strip():
            raise UpstreamError("Image prompt cannot be empty")

        prompt_hash = _prompt_hash(prompt)

        try:
            response = await asyncio.to_thread(self._execute_image_generation, prompt)
        except APIError as e:
            logger.error(
                "Image generation failed (prompt_hash=%s): %s", prompt_hash, e, exc_info=True
            )
            raise self._to_upstream_error(e, "Image generation") from e

        try:
            url = response.data[0].url
        except (AttributeError, IndexError, TypeError) as e:
            logger.error("No image in generation response (prompt_hash=%s)", prompt_hash)
            raise UpstreamError("Image generation returned no image") from e

        if not url:
            raise UpstreamError("Image generation returned no image URL")

        logger.info("Image generated successfully (prompt_hash=%s)", prompt_hash)
        return url

    def _execute_image_generation(self, prompt: str) -> Any:
        """Execute the image generation call (synchronous)."""
        client = self._get_image_client()
        return client.images.generate(
            model=self.config.image_model_name,
            prompt=prompt,
            n=1,
            size=self.config.image_size,
        )
