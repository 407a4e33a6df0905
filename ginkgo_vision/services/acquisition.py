# ginkgo_vision/services/acquisition.py
import base64
import logging
from enum import Enum
from typing import Callable, Optional, Tuple

from ginkgo_vision.models.errors import AcquisitionError, InvalidImageError

logger = logging.getLogger(__name__)

INVALID_IMAGE_MESSAGE = "请上传图片文件"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


class ImageSource(str, Enum):
    """Where the user got the image from"""
    PICKER = "picker"
    CAMERA = "camera"
    DROP = "drop"


def is_image_content_type(content_type: Optional[str]) -> bool:
    return bool(content_type) and content_type.startswith("image/")


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URI"""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def split_data_uri(value: str) -> Tuple[str, str]:
    """
    Split a data URI into its MIME type and base64 payload.

    Input without a comma delimited prefix is taken as a bare payload
    and tagged with the default image MIME type.
    """
    header, sep, payload = value.partition(",")
    if not sep:
        return DEFAULT_IMAGE_MIME_TYPE, value

    mime_type = header[len("data:"):].split(";", 1)[0] if header.startswith("data:") else ""
    return mime_type or DEFAULT_IMAGE_MIME_TYPE, payload


def _log_notification(message: str) -> None:
    logger.info(f"Notifying user: {message}")


class ImageAcquisition:
    """Turns an uploaded image file into a data URI."""

    def __init__(self, notify: Callable[[str], None] = _log_notification):
        self.notify = notify

    def validate(self, upload) -> None:
        """Reject uploads whose declared content type is not an image."""
        if not is_image_content_type(upload.content_type):
            logger.info(f"Rejected upload '{upload.filename}' with content type '{upload.content_type}'")
            self.notify(INVALID_IMAGE_MESSAGE)
            raise InvalidImageError(INVALID_IMAGE_MESSAGE)

    async def acquire(self, upload, source: ImageSource = ImageSource.PICKER) -> str:
        """
        Validate and read an uploaded file.

        Args:
            upload: Object with ``filename``, ``content_type`` and an async
                ``read()``, e.g. FastAPI's UploadFile.
            source: The dialog or gesture that produced the file.

        Returns:
            The complete file content as a data URI.
        """
        self.validate(upload)

        try:
            data = await upload.read()
        except Exception as e:
            logger.error(f"Could not read upload '{upload.filename}': {str(e)}", exc_info=True)
            raise AcquisitionError(f"Could not read uploaded image: {str(e)}") from e

        logger.info(f"Acquired image '{upload.filename}' from {source.value} ({len(data)} bytes)")
        return encode_data_uri(data, upload.content_type)
