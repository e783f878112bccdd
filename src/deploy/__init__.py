"""Deploy — bootstrap экономики и governance на Chain."""

from .bootstrap import DeployedSystem, deploy_economy, deploy_system

__all__ = [
    "DeployedSystem",
    "deploy_economy",
    "deploy_system",
]
