"""
Failures of the captioning pipeline.

`CaptionError` subclasses describe a single image that could not be captioned. Their message is
the placeholder text that is written to the sidecar file in place of a caption, so it has to stay
readable for someone browsing the dataset.

`RunRejectedError` subclasses are raised synchronously by `BatchCaptionController.start_run` when a
run cannot start. Nothing is changed when they are raised.
"""


class CaptionError(Exception):
    """A single image could not be captioned."""

    @property
    def placeholder(self) -> str:
        return str(self)


class ImageReadError(CaptionError):
    def __init__(self, message: str = "Failed to load image data."):
        super().__init__(message)


class TransportError(CaptionError):
    def __init__(self, detail: str):
        super().__init__(f"Error: {detail}")
        self.detail = detail


class ResponseParseError(CaptionError):
    def __init__(self, message: str = "Failed to parse response."):
        super().__init__(message)


class CaptionWriteError(CaptionError):
    def __init__(self, detail: str):
        super().__init__(f"Failed to save caption: {detail}")


class RunRejectedError(Exception):
    """A captioning run was not started."""


class AlreadyRunningError(RunRejectedError):
    def __init__(self):
        super().__init__("A captioning run is already in progress.")


class EmptyTargetSetError(RunRejectedError):
    def __init__(self):
        super().__init__("No images selected.")


class MissingCredentialError(RunRejectedError):
    def __init__(self):
        super().__init__("No API key configured.")

