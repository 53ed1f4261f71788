import base64
import logging
from io import BytesIO
from typing import Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from ..config import (
    JOTFORM_API_KEY,
    IMAGE_HOST,
    IMGBB_API_KEY,
    IMGBB_UPLOAD_URL,
    IMAGE_OPTIMIZE,
    IMAGE_MAX_WIDTH,
    IMAGE_QUALITY,
    HTTP_TIMEOUT,
)
from ..exceptions import DownloadFailed, UploadFailed
from .jotform import with_api_key
from .s3 import S3Host

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
SOURCE_REFERER = "https://www.jotform.com/"


def optimize_image(content: bytes, max_width: int = IMAGE_MAX_WIDTH, quality: int = IMAGE_QUALITY) -> Tuple[bytes, str]:
    """
    Downscale to at most `max_width` pixels wide and re-encode as JPEG.

    Returns the new bytes and their content type. Raises UnidentifiedImageError /
    OSError when Pillow cannot decode the input.
    """
    image = Image.open(BytesIO(content))

    # JPEG has no alpha channel or palette
    if image.mode != 'RGB':
        image = image.convert('RGB')

    if image.width > max_width:
        height = max(1, round(image.height * max_width / image.width))
        image = image.resize((max_width, height), Image.Resampling.LANCZOS)

    output = BytesIO()
    image.save(output, format='JPEG', quality=quality, optimize=True)
    return output.getvalue(), "image/jpeg"


class ImgbbHost:
    """Uploads base64 image data to imgbb and returns the permanent URL."""

    def __init__(
        self,
        api_key: Optional[str] = IMGBB_API_KEY,
        upload_url: str = IMGBB_UPLOAD_URL,
        client: Optional[httpx.Client] = None
    ):
        self.api_key = api_key
        self.upload_url = upload_url
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    def upload(self, image: bytes, content_type: str = "image/jpeg") -> str:
        try:
            response = self.client.post(
                self.upload_url,
                data={"key": self.api_key or "", "image": base64.b64encode(image).decode("ascii")}
            )
        except httpx.HTTPError as e:
            raise UploadFailed(f"imgbb upload failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {"raw": response.text}

        if response.is_error or not isinstance(payload, dict) or not payload.get("success"):
            raise UploadFailed(f"imgbb upload failed: {payload}")

        url = (payload.get("data") or {}).get("url")
        if not url:
            raise UploadFailed(f"imgbb upload returned no url: {payload}")
        return url


class ImageRelay:
    """Downloads a source-authenticated image and re-hosts it permanently."""

    def __init__(
        self,
        host,
        api_key: Optional[str] = JOTFORM_API_KEY,
        optimize: bool = IMAGE_OPTIMIZE,
        max_width: int = IMAGE_MAX_WIDTH,
        quality: int = IMAGE_QUALITY,
        client: Optional[httpx.Client] = None
    ):
        self.host = host
        self.api_key = api_key
        self.optimize = optimize
        self.max_width = max_width
        self.quality = quality
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    def download(self, source_url: str) -> Tuple[bytes, str]:
        try:
            response = self.client.get(
                with_api_key(source_url, self.api_key),
                headers={"User-Agent": BROWSER_USER_AGENT, "Referer": SOURCE_REFERER},
                follow_redirects=True
            )
        except httpx.HTTPError as e:
            raise DownloadFailed(f"Cannot download image: {e}")

        content_type = response.headers.get("content-type", "")
        if response.is_error or not content_type.startswith("image/"):
            raise DownloadFailed(f"Jotform CDN returned non-image ({response.status_code} {content_type})")
        return response.content, content_type.split(";")[0].strip()

    def prepare(self, content: bytes, content_type: str) -> Tuple[bytes, str]:
        if not self.optimize:
            return content, content_type
        try:
            return optimize_image(content, self.max_width, self.quality)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Uploading original image, re-encoding failed: {e}")
            return content, content_type

    def relay(self, source_url: str) -> str:
        content, content_type = self.download(source_url)
        content, content_type = self.prepare(content, content_type)
        url = self.host.upload(content, content_type)
        logger.info(f"Relayed {source_url} to {url}")
        return url


def create_image_host(kind: str = IMAGE_HOST):
    if kind == "s3":
        return S3Host()
    if kind == "imgbb":
        return ImgbbHost()
    raise ValueError(f"Unknown IMAGE_HOST '{kind}'")


def get_relay():
    relay = ImageRelay(host=create_image_host())
    try:
        yield relay
    finally:
        relay.client.close()
        host_client = getattr(relay.host, "client", None)
        if isinstance(host_client, httpx.Client):
            host_client.close()
