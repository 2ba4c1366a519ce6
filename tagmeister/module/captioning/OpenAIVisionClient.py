import base64
import json
import logging
from typing import TYPE_CHECKING

from tagmeister.module.captioning.BaseVisionCaptionClient import BaseVisionCaptionClient
from tagmeister.module.captioning.caption_errors import ResponseParseError, TransportError

import requests

if TYPE_CHECKING:
    from tagmeister.util.config.CaptionConfig import CaptionConfig

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MAX_TOKENS = 300
DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_PROMPT = (
    "Describe this image in one concise paragraph, starting immediately with the primary subject "
    "(e.g., 'A watch,' 'A landscape,' 'A person'). Focus on key elements, their relationships, and notable "
    "details. Be specific and direct, avoiding any introductory phrases like 'The image shows' or 'I can see.' "
    "Prioritize the most important aspects and describe them factually. Identify the main subject quickly and "
    "accurately, noting its dominant characteristics such as size, color, shape, or position. For multiple "
    "elements, describe their spatial relationships. Include relevant details about composition, color schemes, "
    "lighting, and textures. Mention any actions, movements, functions, or unique features of objects, and "
    "appearances or behaviors of people or animals. Include any visible text, logos, or recognizable symbols. "
    "Describe what you see literally, without interpreting the image's style (e.g., don't use terms like "
    "'stylized,' 'illustration,' or mention artistic techniques). Treat every subject as a real object or scene, "
    "not as a representation. Use varied and precise vocabulary to create a vivid description while maintaining "
    "a neutral tone. Avoid subjective interpretations unless crucial to understanding the image's content."
)


class OpenAIVisionClient(BaseVisionCaptionClient):
    """Captions images through an OpenAI compatible chat completions endpoint."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        prompt: str = DEFAULT_PROMPT,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url
        self.prompt = prompt
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    @staticmethod
    def from_config(config: 'CaptionConfig', session: requests.Session | None = None) -> 'OpenAIVisionClient':
        return OpenAIVisionClient(
            api_url=config.api_url,
            prompt=config.prompt,
            max_tokens=config.max_tokens,
            timeout=config.request_timeout,
            session=session,
        )

    def build_payload(self, image_bytes: bytes, model: str, mime_type: str = "image/jpeg") -> dict:
        base64_image = base64.b64encode(image_bytes).decode("ascii")

        return {
            "model": model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{base64_image}"}},
                    ],
                }
            ],
            "max_tokens": self.max_tokens,
        }

    def describe(
        self,
        image_bytes: bytes,
        api_key: str,
        model: str,
        mime_type: str = "image/jpeg",
    ) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        payload = self.build_payload(image_bytes, model, mime_type)

        try:
            response = self.session.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {self.api_url} failed: {e}")
            raise TransportError(str(e)) from e

        if not response.ok:
            detail = self._error_message(response)
            logger.error(f"Captioning request rejected with HTTP {response.status_code}: {detail}")
            raise TransportError(f"HTTP {response.status_code}: {detail}")

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(f"Full response: {response.text}")
            raise ResponseParseError(f"Error parsing JSON: {e}") from e

        return self.parse_caption(body)

    @staticmethod
    def parse_caption(body) -> str:
        """Extracts choices[0].message.content from a chat completions response."""
        try:
            caption = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.warning(f"Full response: {json.dumps(body)}")
            raise ResponseParseError() from e

        if not isinstance(caption, str):
            logger.warning(f"Full response: {json.dumps(body)}")
            raise ResponseParseError()

        return caption

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        # OpenAI style errors: {"error": {"message": "..."}}
        try:
            error = response.json().get("error")
        except (ValueError, AttributeError):
            error = None

        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return response.reason or "request failed"
