"""Ficha pipeline: cache check, upstream lookup, rendering, upload, response."""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote, unquote, urlparse

import requests

from .assets import AssetFetcher
from .card_renderer import CardRenderer
from .card_set import CardImage, CardSetBuilder
from .clients import GitHubStore, LookupClient
from .config import Settings
from .errors import DownloadProxyFailure, InvalidParameter, MissingParameter
from .record_parser import ParsedRecord, parse_upstream_payload
from .text_layout import load_fonts
from .utils import get_logger, http_retry

logger = get_logger(__name__)

DNI_RE = re.compile(r"^[0-9A-Za-z]{1,20}$")
# Anything else is replaced so the name is safe in a Content-Disposition header
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")
DEFAULT_DOWNLOAD_NAME = "ficha.png"


def url_key(card: CardImage, total: int) -> str:
    """Response key for a card: FILE, FILE_<page> or FILE_<KIND>."""
    if total == 1:
        return "FILE"
    if card.is_continuation:
        return f"FILE_{card.page}"
    return f"FILE_{card.suffix}"


def card_filename(dni: str, token: str, card: CardImage) -> str:
    return f"{dni}_{token}_{card.suffix}.png"


def download_filename(path: str) -> str:
    """Attachment name for a proxied URL path, restricted to ASCII letters, digits and ``._-``."""
    name = _UNSAFE_FILENAME_RE.sub("_", unquote(path.rsplit("/", 1)[-1]))
    if not any(c.isalnum() for c in name):
        return DEFAULT_DOWNLOAD_NAME
    return name


class FichaService:
    """Produces the chat-bot response for a DNI query and serves card downloads."""

    def __init__(
        self,
        settings: Settings,
        lookup: LookupClient,
        store: GitHubStore,
        builder: CardSetBuilder,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.lookup = lookup
        self.store = store
        self.builder = builder
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FichaService":
        """Wire the real clients and renderer from configuration."""
        timeout = settings.http_timeout_seconds
        renderer = CardRenderer(
            fonts=load_fonts(settings.fonts_dir),
            assets=AssetFetcher(timeout=timeout),
            icon_url=settings.app_icon_url,
            qr_url=settings.app_qr_url,
        )
        return cls(
            settings=settings,
            lookup=LookupClient(settings.upstream_base_url, timeout=timeout),
            store=GitHubStore(
                token=settings.github_token,
                repo=settings.github_repo,
                branch=settings.github_branch,
                folder=settings.github_folder,
                timeout=timeout,
            ),
            builder=CardSetBuilder(renderer),
        )

    # ------------------------------------------------------------------
    # Response helpers
    # ------------------------------------------------------------------

    def proxy_url(self, store_url: str) -> str:
        base = self.settings.public_base_url.rstrip("/")
        return f"{base}/descargar-ficha?url={quote(store_url, safe='')}"

    def _response(self, dni: str, message: str, urls: dict[str, str]) -> dict:
        now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return {
            "bot": self.settings.bot_name,
            "chat_id": self.settings.bot_chat_id,
            "date": now,
            "fields": {"dni": dni},
            "from_id": self.settings.bot_chat_id,
            "message": message,
            "parts_received": len(urls),
            "urls": urls,
        }

    @staticmethod
    def _validate_dni(dni: Optional[str]) -> str:
        dni = (dni or "").strip()
        if not dni:
            raise MissingParameter("Falta el parámetro DNI")
        if not DNI_RE.match(dni):
            raise InvalidParameter("El parámetro DNI solo admite letras y números")
        return dni

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def generate(self, dni: Optional[str]) -> dict:
        """
        Build (or fetch from cache) the cards for ``dni``.

        Returns:
            The chat-bot response body with proxy download URLs

        Raises:
            MissingParameter: Empty DNI
            UpstreamNotFound: No record (including malformed upstream text)
            FichaError: Lookup, store configuration or upload failures
        """
        dni = self._validate_dni(dni)

        cached_url = self.store.find_cached_card(dni)
        if cached_url:
            message = f"DNI : {dni}\nESTADO : RESULTADO PRINCIPAL ENCONTRADO EN CACHÉ."
            return self._response(dni, message, {"FILE": self.proxy_url(cached_url)})

        payload = self.lookup.lookup(dni)
        record = parse_upstream_payload(payload)
        cards = self.builder.build(dni, record)
        urls = self._upload(dni, cards)
        return self._response(dni, self._summary_message(dni, record, len(cards)), urls)

    def _upload(self, dni: str, cards: list[CardImage]) -> dict[str, str]:
        token = uuid.uuid4().hex
        urls: dict[str, str] = {}
        for card in cards:
            filename = card_filename(dni, token, card)
            store_url = self.store.put(
                filename, card.png, message=f"feat: Ficha generada para DNI {dni} ({card.suffix})"
            )
            urls[url_key(card, len(cards))] = self.proxy_url(store_url)
        return urls

    @staticmethod
    def _summary_message(dni: str, record: ParsedRecord, total: int) -> str:
        status = "MÚLTIPLES FICHAS GENERADAS CON ÉXITO." if total > 1 else "FICHA GENERADA CON ÉXITO."
        return (
            f"DNI : {dni}\n"
            f"APELLIDOS : {record.personal.surnames}\n"
            f"NOMBRES : {record.personal.given_names}\n"
            f"ESTADO : {status}"
        )

    @http_retry
    def _fetch(self, url: str) -> bytes:
        response = self._session.get(url, timeout=self.settings.http_timeout_seconds)
        response.raise_for_status()
        return response.content

    def download(self, url: Optional[str]) -> tuple[str, bytes]:
        """
        Fetch a stored card for the download proxy.

        Returns:
            (filename, PNG bytes)
        """
        if not url:
            raise MissingParameter("Falta el parámetro 'url' de la imagen.")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise DownloadProxyFailure("URL de imagen no válida.", detail=url)
        try:
            content = self._fetch(url)
        except requests.RequestException as e:
            logger.error(f"Download proxy failed for {url}: {e}")
            raise DownloadProxyFailure("Error al procesar la descarga del archivo.", detail=str(e)) from e
        return download_filename(parsed.path), content
