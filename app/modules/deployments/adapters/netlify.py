import hashlib
import logging
from typing import Dict, List
from urllib.parse import quote

import httpx

from app.core.exceptions import DeployError
from app.modules.deployments.adapters.base import DeployResult, HttpDeployAdapter, collect_files

logger = logging.getLogger(__name__)


class NetlifyAdapter(HttpDeployAdapter):
    """
    Netlify file-digest deploy:
    find or create the site, post SHA-1 digests of every file, then upload
    only the files Netlify reports as missing.
    """

    provider = "netlify"
    token_setting = "NETLIFY_TOKEN"

    def deploy(self, build_dir: str, site_name: str) -> DeployResult:
        files = collect_files(build_dir)
        digests: Dict[str, str] = {}
        paths_by_sha: Dict[str, str] = {}
        contents: Dict[str, bytes] = {}
        for relative, path in files:
            data = path.read_bytes()
            sha = hashlib.sha1(data).hexdigest()
            digests["/" + relative] = sha
            if sha not in paths_by_sha:
                paths_by_sha[sha] = relative
                contents[relative] = data

        with self._client() as client:
            site_id = self._find_or_create_site(client, site_name)
            deploy = self._json(
                client, "POST", f"/sites/{site_id}/deploys", json={"files": digests}
            )
            deploy_id = deploy.get("id")
            if not deploy_id:
                raise DeployError(self.provider, "deploy response did not include an id")

            required: List[str] = deploy.get("required") or []
            for sha in required:
                relative = paths_by_sha.get(sha)
                if relative is None:
                    logger.warning(f"Netlify requested unknown file digest {sha}")
                    continue
                self._request(
                    client,
                    "PUT",
                    f"/deploys/{deploy_id}/files/{quote(relative)}",
                    content=contents[relative],
                    headers={"Content-Type": "application/octet-stream"},
                )

        logger.info(f"Netlify deploy {deploy_id} for {site_name}: {len(files)} files, {len(required)} uploaded")
        return DeployResult(
            url=deploy.get("ssl_url") or deploy.get("url") or f"https://{site_name}.netlify.app",
            remote_deployment_id=deploy_id,
            metadata={
                "provider": self.provider,
                "site_id": site_id,
                "file_count": len(files),
                "uploaded_count": len(required),
            },
        )

    def _find_or_create_site(self, client: httpx.Client, site_name: str) -> str:
        sites = self._json(client, "GET", "/sites", params={"name": site_name}) or []
        # The name filter is a substring match
        for site in sites:
            if site.get("name") == site_name:
                return site["id"]

        site = self._json(client, "POST", "/sites", json={"name": site_name})
        logger.info(f"Created Netlify site {site_name} ({site.get('id')})")
        if not site.get("id"):
            raise DeployError(self.provider, "failed to create site")
        return site["id"]
