"""GitHub repository used as the card store, via the Contents API.

Cards live in a single folder of one branch. Public URLs point at
``raw.githubusercontent.com`` so they can be fetched without credentials.
"""

import base64
from typing import Optional

import requests

from ..errors import PersistenceFailure, StoreConfigurationMissing
from ..utils import get_logger, http_retry

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"
USER_AGENT = "FichaCardService"
PRIMARY_SUFFIX = "PERSONALES"


class GitHubStore:
    """Blob store with list / put by file name inside ``folder``."""

    def __init__(
        self,
        token: Optional[str],
        repo: Optional[str],
        branch: str = "main",
        folder: str = "public",
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.repo = repo
        self.branch = branch
        self.folder = folder.strip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _owner_repo(self) -> tuple[str, str]:
        if not self.token or not self.repo:
            raise StoreConfigurationMissing("GITHUB_TOKEN o GITHUB_REPO no están definidos.")
        owner, _, name = self.repo.partition("/")
        if not owner or not name or "/" in name:
            raise StoreConfigurationMissing("El formato de GITHUB_REPO debe ser 'owner/repository-name'.")
        return owner, name

    def _headers(self) -> dict:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }

    def _contents_url(self, owner: str, name: str, path: str) -> str:
        return f"{GITHUB_API_URL}/repos/{owner}/{name}/contents/{path}"

    def public_url(self, filename: str) -> str:
        owner, name = self._owner_repo()
        return f"{GITHUB_RAW_URL}/{owner}/{name}/{self.branch}/{self.folder}/{filename}"

    @http_retry
    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)

    def list_files(self, prefix: str = "") -> list[str]:
        """
        File names in the store folder starting with ``prefix``.

        A missing folder is an empty store, not an error.
        """
        owner, name = self._owner_repo()
        response = self._request(
            "GET", self._contents_url(owner, name, self.folder), params={"ref": self.branch}
        )
        if response.status_code == 404:
            logger.warning(f"Store folder '{self.folder}' not found in {self.repo}")
            return []
        response.raise_for_status()
        return [
            item["name"]
            for item in response.json()
            if item.get("type") == "file" and item.get("name", "").startswith(prefix)
        ]

    def put(self, filename: str, data: bytes, message: Optional[str] = None) -> str:
        """
        Create ``filename`` in the store folder and return its public URL.

        Raises:
            StoreConfigurationMissing: Token or repository not configured
            PersistenceFailure: The GitHub API rejected or failed the upload
        """
        owner, name = self._owner_repo()
        path = f"{self.folder}/{filename}"
        body = {
            "message": message or f"feat: Ficha generada ({filename})",
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self.branch,
        }
        logger.info(f"Uploading {path} to {self.repo}")
        try:
            response = self._request("PUT", self._contents_url(owner, name, path), json=body)
            response.raise_for_status()
        except requests.RequestException as e:
            raise PersistenceFailure("Error al subir la ficha a GitHub", detail=str(e)) from e

        url = self.public_url(filename)
        logger.info(f"Uploaded {filename}: {url}")
        return url

    def find_cached_card(self, dni: str) -> Optional[str]:
        """
        Public URL of an existing primary card for ``dni``, if any.

        Only ``<dni>_<token>_PERSONALES.png`` counts as a hit, so continuation
        pages and table cards are never returned as the cached result. Store
        problems are logged and reported as a miss.
        """
        try:
            names = self.list_files(prefix=f"{dni}_")
        except StoreConfigurationMissing as e:
            logger.error(f"Card cache unavailable: {e.message}")
            return None
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Card cache lookup failed, generating instead: {e}")
            return None

        for filename in sorted(names):
            if filename.endswith(f"_{PRIMARY_SUFFIX}.png"):
                logger.info(f"Card for DNI {dni} found in cache: {filename}")
                return self.public_url(filename)

        logger.info(f"No cached card for DNI {dni}")
        return None
