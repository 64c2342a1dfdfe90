from types import MappingProxyType
from typing import Mapping

from app.config import Settings
from app.modules.deployments.adapters.base import DeployAdapter, DeployResult
from app.modules.deployments.adapters.netlify import NetlifyAdapter
from app.modules.deployments.adapters.vercel import VercelAdapter
from app.modules.projects.schemas import DeployTarget

__all__ = ["DeployAdapter", "DeployResult", "NetlifyAdapter", "VercelAdapter", "build_deploy_adapters"]


def build_deploy_adapters(settings: Settings) -> Mapping[DeployTarget, DeployAdapter]:
    """Adapter per supported deploy target. Targets missing here have no provider integration."""
    return MappingProxyType({
        DeployTarget.NETLIFY: NetlifyAdapter(
            token=settings.netlify_token,
            base_url=settings.netlify_api_url,
            timeout=settings.deploy_http_timeout,
        ),
        DeployTarget.VERCEL: VercelAdapter(
            token=settings.vercel_token,
            base_url=settings.vercel_api_url,
            timeout=settings.deploy_http_timeout,
            team_id=settings.vercel_team_id,
        ),
    })
