"""Error types surfaced by the ficha pipeline."""

from typing import Optional


class FichaError(Exception):
    """Base error. ``code`` is the short category shown to API consumers."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class MissingParameter(FichaError):
    code = "MISSING_PARAMETER"
    status_code = 400


class UpstreamNotFound(FichaError):
    code = "NOT_FOUND"
    status_code = 404


class MalformedUpstreamPayload(UpstreamNotFound):
    """The upstream answered, but with no parseable personal-data block."""

    code = "MALFORMED_PAYLOAD"


class UpstreamLookupError(FichaError):
    code = "UPSTREAM_ERROR"


class StoreConfigurationMissing(FichaError):
    code = "STORE_NOT_CONFIGURED"


class PersistenceFailure(FichaError):
    code = "PERSISTENCE_FAILURE"


class DownloadProxyFailure(FichaError):
    code = "DOWNLOAD_FAILURE"


class InvalidParameter(MissingParameter):
    code = "INVALID_PARAMETER"
