"""Chat and image generation on top of the OpenAI async client."""

import logging
import os
from typing import Optional, Sequence

import openai
from openai import AsyncOpenAI

from models.session_models import ChatTurn, WorkMode
from services.openai.errors import ConfigurationError
from services.openai.media_inputs import build_inputs
from services.openai.prompts import build_image_prompt, build_system_prompt
from services.openai.response_parser import extract_image_b64, extract_text, extract_usage
from services.openai.retry import call_with_retry

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-5")
DEFAULT_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "gpt-image-1")


def create_openai_client() -> AsyncOpenAI:
    """Build the async client, failing fast when no API key is configured."""
    if not os.getenv("OPENAI_API_KEY"):
        raise ConfigurationError("OPENAI_API_KEY environment variable is not set")
    return AsyncOpenAI()


class ChatService:
    """Send conversation turns to the model and request generated images.

    The client is created lazily so a missing credential surfaces per request
    as a `ConfigurationError` rather than preventing startup.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        *,
        model: str = DEFAULT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
    ) -> None:
        self._client = client
        self.model = model
        self.image_model = image_model

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = create_openai_client()
        return self._client

    async def complete(self, turns: Sequence[ChatTurn], mode: WorkMode = WorkMode.OHISAMA) -> str:
        """Return the assistant reply for the given history.

        Rate-limited calls are retried; see `call_with_retry`.
        """
        if not turns:
            raise ValueError("At least one message is required.")
        inputs = build_inputs(build_system_prompt(mode), turns)
        client = self.client

        async def _call():
            return await client.responses.create(model=self.model, input=inputs)

        response = await call_with_retry(_call)
        LOGGER.info("Chat reply received (usage=%s)", extract_usage(response))
        return extract_text(response)

    async def generate_image(self, prompt: str) -> Optional[str]:
        """Return a base64 image for the prompt, or None when the model declines."""
        client = self.client

        async def _call():
            return await client.images.generate(
                model=self.image_model,
                prompt=build_image_prompt(prompt),
                size="1024x1024",
                n=1,
            )

        try:
            response = await call_with_retry(_call)
        except openai.BadRequestError as exc:
            LOGGER.warning("Image generation declined: %s", exc)
            return None
        image = extract_image_b64(response)
        if image is None:
            LOGGER.warning("Image generation returned no image data")
        return image

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
