import base64
import logging
from typing import Optional

from app.core.exceptions import DeployError
from app.modules.deployments.adapters.base import DeployResult, HttpDeployAdapter, collect_files

logger = logging.getLogger(__name__)


class VercelAdapter(HttpDeployAdapter):
    """Single-request Vercel deployment with every file inlined as base64."""

    provider = "vercel"
    token_setting = "VERCEL_TOKEN"

    def __init__(self, token: Optional[str], base_url: str, timeout: float, team_id: Optional[str] = None):
        super().__init__(token, base_url, timeout)
        self.team_id = team_id

    def deploy(self, build_dir: str, site_name: str) -> DeployResult:
        files = [
            {
                "file": relative,
                "data": base64.b64encode(path.read_bytes()).decode("ascii"),
                "encoding": "base64",
            }
            for relative, path in collect_files(build_dir)
        ]
        params = {"teamId": self.team_id} if self.team_id else None

        with self._client() as client:
            data = self._json(
                client,
                "POST",
                "/v13/deployments",
                params=params,
                json={
                    "name": site_name,
                    "files": files,
                    "projectSettings": {"framework": None},
                },
            )

        if not data.get("url") or not data.get("id"):
            raise DeployError(self.provider, "deployment response did not include url and id")

        logger.info(f"Vercel deployment {data['id']} for {site_name}: {len(files)} files")
        return DeployResult(
            url=f"https://{data['url']}",
            remote_deployment_id=data["id"],
            metadata={
                "provider": self.provider,
                "ready_state": data.get("readyState"),
                "file_count": len(files),
            },
        )
