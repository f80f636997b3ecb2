"""Client for the upstream DNI lookup API."""

from typing import Optional

import requests

from ..errors import UpstreamLookupError, UpstreamNotFound
from ..utils import get_logger, http_retry

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "No se encontró información para el DNI ingresado."


class LookupClient:
    """Queries ``GET <base_url>?dni=<dni>`` and returns the JSON record payload."""

    def __init__(self, base_url: str, timeout: float = 20.0, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self._session = session or requests.Session()

    @http_retry
    def _get(self, dni: str) -> requests.Response:
        return self._session.get(self.base_url, params={"dni": dni}, timeout=self.timeout)

    def lookup(self, dni: str) -> dict:
        """
        Fetch the record for ``dni``.

        Raises:
            UpstreamNotFound: The upstream reports no record (``status != "ok"``)
            UpstreamLookupError: Transport failure, HTTP error or non-JSON body
        """
        logger.info(f"Looking up DNI {dni}")
        try:
            response = self._get(dni)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise UpstreamLookupError("Error al consultar el servicio de datos", detail=str(e)) from e
        except ValueError as e:
            raise UpstreamLookupError("Respuesta inválida del servicio de datos", detail=str(e)) from e

        if not isinstance(data, dict):
            raise UpstreamLookupError("Respuesta inválida del servicio de datos", detail=type(data).__name__)
        if data.get("status") != "ok":
            logger.info(f"Upstream has no record for DNI {dni}")
            raise UpstreamNotFound(data.get("message") or NOT_FOUND_MESSAGE)
        return data
