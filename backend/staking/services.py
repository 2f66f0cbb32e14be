"""
Staking services.

Builds the staking client once per process from environment configuration
and exposes it to the management commands.
"""

from typing import Optional, Dict, Any

import structlog

from .clients.staking_client import BonkStakingClient
from .config import get_staking_config

logger = structlog.get_logger(__name__)


class StakingService:
    """
    High-level service owning the BonkStakingClient instance.
    """

    _instance: Optional['StakingService'] = None

    def __new__(cls) -> 'StakingService':
        """Singleton pattern to ensure only one instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, '_initialized'):
            self.config = get_staking_config()
            self._client: Optional[BonkStakingClient] = None
            self._initialized = True
            logger.info(
                "StakingService initialized",
                network=self.config['network'],
                rpc_url=self.config['rpc_url'],
                deployment=self.config['deployment'].name
            )

    @classmethod
    def reset(cls):
        """Drop the cached instance so the next call re-reads the environment."""
        cls._instance = None

    @property
    def client(self) -> BonkStakingClient:
        if self._client is None:
            endpoint = self.config['rpc_endpoints'][0]
            self._client = BonkStakingClient(
                rpc_url=endpoint['url'],
                deployment=self.config['deployment'],
                settings=self.config['settings'],
                endpoint_name=endpoint['name'],
            )
        return self._client

    @property
    def deployment(self):
        return self.config['deployment']

    def get_health_status(self) -> Dict[str, Any]:
        """Get endpoint health together with the active configuration."""
        health = self.client.check_health()
        return {
            "status": health["status"],
            "network": self.config['network'],
            "endpoint": health,
            "deployment": self.deployment.to_dict(),
            "config": {
                "commitment": self.config['settings'].commitment,
                "priority_fee": self.config['settings'].priority_fee,
                "nonce_probe_limit": self.config['settings'].nonce_probe_limit,
                "confirm_timeout": self.config['settings'].confirm_timeout,
            }
        }


def get_staking_service() -> StakingService:
    """Return the process-wide StakingService."""
    return StakingService()
