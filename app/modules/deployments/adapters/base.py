import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.core.exceptions import DeployError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployResult:
    url: str
    remote_deployment_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class DeployAdapter(ABC):
    """Publishes a build directory to one hosting provider."""

    provider: str = ""

    @abstractmethod
    def deploy(self, build_dir: str, site_name: str) -> DeployResult:
        """Upload every file under build_dir as site `site_name`; raise DeployError on failure."""


def collect_files(build_dir: str) -> List[Tuple[str, Path]]:
    """(posix relative path, absolute path) for each file in the build, in stable order."""
    root = Path(build_dir)
    return sorted(
        ((p.relative_to(root).as_posix(), p) for p in root.rglob("*") if p.is_file()),
        key=lambda item: item[0],
    )


class HttpDeployAdapter(DeployAdapter):
    """Shared plumbing for providers driven through a bearer-token REST API."""

    token_setting: str = ""

    def __init__(self, token: Optional[str], base_url: str, timeout: float):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _client(self) -> httpx.Client:
        if not self.token:
            raise DeployError(self.provider, f"{self.token_setting} is not configured")
        return httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout,
        )

    def _request(self, client: httpx.Client, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise DeployError(self.provider, f"{method} {url} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise DeployError(self.provider, f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"{self.provider} API {method} {url} returned {response.status_code}")
            raise DeployError(
                self.provider,
                f"{method} {url} returned {response.status_code}: {response.text[:500]}",
                upstream_status=response.status_code,
            )
        return response

    def _json(self, client: httpx.Client, method: str, url: str, **kwargs) -> Any:
        response = self._request(client, method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise DeployError(
                self.provider,
                f"{method} {url} returned a non-JSON body: {response.text[:200]}",
                upstream_status=response.status_code,
            ) from e
