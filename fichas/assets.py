"""Optional visual assets for cards: remote images and QR codes.

Every call returns a FetchResult instead of raising, so the renderer can skip
an element that failed without aborting the card.
"""

import io
from dataclasses import dataclass
from typing import Optional

import qrcode
from qrcode.exceptions import DataOverflowError
import requests
from PIL import Image, UnidentifiedImageError

from .utils import http_retry

USER_AGENT = "FichaCardService/1.0"


@dataclass(frozen=True)
class FetchResult:
    """Either a decoded image or the reason it could not be produced."""

    image: Optional[Image.Image] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None

    @classmethod
    def failed(cls, error: str) -> "FetchResult":
        return cls(error=error)


class AssetFetcher:
    """Downloads and decodes images with a bounded timeout."""

    def __init__(self, timeout: float = 20.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    @http_retry
    def _get(self, url: str) -> bytes:
        response = self._session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    def fetch_image(self, url: Optional[str]) -> FetchResult:
        """Download ``url`` and decode it as an RGBA image."""
        if not url:
            return FetchResult.failed("no URL")
        try:
            content = self._get(url)
        except requests.RequestException as e:
            return FetchResult.failed(f"download failed: {e}")
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            return FetchResult.failed(f"decode failed: {e}")
        return FetchResult(image=image.convert("RGBA"))

    def make_qr(self, data: str) -> FetchResult:
        """Render ``data`` as a QR code image."""
        try:
            qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=2)
            qr.add_data(data)
            qr.make(fit=True)
            image = qr.make_image(fill_color="black", back_color="white").get_image()
        except (ValueError, DataOverflowError) as e:
            return FetchResult.failed(f"QR generation failed: {e}")
        return FetchResult(image=image.convert("RGBA"))
