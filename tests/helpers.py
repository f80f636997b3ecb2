"""
Test doubles shared by the unit tests.
"""

from typing import Optional

import requests
from PIL import Image

from fichas.assets import FetchResult
from fichas.card_renderer import CardKind
from fichas.card_set import CardImage
from fichas.errors import UpstreamNotFound
from fichas.record_parser import CompanyEntry
from fichas.text_layout import FontSet


class FixedWidthFont:
    """Every character is ``advance`` pixels wide."""

    def __init__(self, advance: int = 10):
        self.advance = advance

    def getlength(self, text: str) -> float:
        return len(text) * self.advance


def fixed_fonts(advance: int = 10) -> FontSet:
    font = FixedWidthFont(advance)
    return FontSet(title=font, heading=font, bold=font, data=font)


class RecordingDraw:
    """ImageDraw stand-in that records text calls."""

    def __init__(self):
        self.calls: list[tuple[tuple[int, int], str]] = []

    def text(self, xy, text, **kwargs):
        self.calls.append((xy, text))

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.calls]


class StubAssets:
    """Asset fetcher that never touches the network."""

    def __init__(self, image: Optional[Image.Image] = None, qr: bool = True):
        self.image = image
        self.qr = qr
        self.requested: list[str] = []

    def fetch_image(self, url):
        self.requested.append(url)
        if self.image is None:
            return FetchResult.failed("offline")
        return FetchResult(image=self.image)

    def make_qr(self, data):
        if not self.qr:
            return FetchResult.failed("qr disabled")
        return FetchResult(image=Image.new("RGBA", (120, 120), "white"))


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data=None, content: bytes = b""):
        self.status_code = status_code
        self._json = json_data
        self.content = content

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """requests.Session stand-in returning queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []
        self.headers: dict = {}

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        self.calls.append({"method": "GET", "url": url, **kwargs})
        return self._next()

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        return self._next()


class FakeLookup:
    def __init__(self, payload: Optional[dict] = None, error: Optional[Exception] = None):
        self.payload = payload
        self.error = error
        self.calls: list[str] = []

    def lookup(self, dni: str) -> dict:
        self.calls.append(dni)
        if self.error is not None:
            raise self.error
        if self.payload is None:
            raise UpstreamNotFound("No se encontró información para el DNI ingresado.")
        return self.payload


class FakeStore:
    RAW_BASE = "https://raw.githubusercontent.com/acme/fichas/main/public"

    def __init__(self, cached: Optional[str] = None, error: Optional[Exception] = None):
        self.cached = cached
        self.error = error
        self.files: dict[str, bytes] = {}
        self.messages: list[str] = []

    def find_cached_card(self, dni: str) -> Optional[str]:
        return self.cached

    def put(self, filename: str, data: bytes, message: Optional[str] = None) -> str:
        if self.error is not None:
            raise self.error
        self.files[filename] = data
        self.messages.append(message)
        return f"{self.RAW_BASE}/{filename}"


class FakeBuilder:
    """Card set builder returning one card per requested suffix."""

    def __init__(self, suffixes=("PERSONALES",)):
        self.suffixes = suffixes
        self.records = []

    def build(self, dni, record):
        self.records.append(record)
        cards = []
        for page, suffix in enumerate(self.suffixes, start=1):
            if suffix.startswith("PAGE_"):
                kind = CardKind.COMPANY
            else:
                kind = CardKind(suffix)
            cards.append(CardImage(suffix, f"png-{suffix}".encode(), page, kind))
        return cards


def make_companies(count: int) -> tuple[CompanyEntry, ...]:
    return tuple(
        CompanyEntry(
            dni="45678912",
            tax_id=f"20{index:09d}",
            business_name=f"EMPRESA NUMERO {index} SAC",
            position="DIRECTOR",
            since="2020-01-01",
        )
        for index in range(count)
    )
