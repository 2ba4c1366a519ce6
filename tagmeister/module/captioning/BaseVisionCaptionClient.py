from abc import ABC, abstractmethod

from tagmeister.module.captioning.CaptionSample import CaptionSample


class BaseVisionCaptionClient(ABC):
    @abstractmethod
    def describe(
        self,
        image_bytes: bytes,
        api_key: str,
        model: str,
        mime_type: str = "image/jpeg",
    ) -> str:
        """
        Asks a vision model to describe an image.

        Args:
            image_bytes (`bytes`): the raw, encoded image file
            api_key (`str`): the credential, passed through unchanged
            model (`str`): the model identifier, passed through unchanged
            mime_type (`str`): the image's media type

        Returns: the raw caption text of the model

        Raises:
            TransportError: the backend could not be reached or refused the request
            ResponseParseError: the backend answered with an unexpected payload
        """

    def caption_sample(self, sample: CaptionSample, api_key: str, model: str) -> str:
        """Reads the sample's image and describes it. Raises ImageReadError if the file can't be read."""
        image_bytes = sample.read_image_bytes()
        return self.describe(image_bytes, api_key, model, mime_type=sample.mime_type)
