"""AWS session and client management for ssoinventory."""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_MAX_POOL_CONNECTIONS = 10


class AWSClientManager:
    """Manages AWS client connections for the inventory services."""

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
    ):
        """
        Initialize the AWS client manager.

        Args:
            profile: AWS profile name to use
            region: AWS region to use
            max_pool_connections: HTTP connection pool size per client, normally the
                concurrency ceiling of the run
        """
        self.profile = profile
        self.region = region
        self.max_pool_connections = max_pool_connections
        self.session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}
        self._init_session()

    def _init_session(self) -> None:
        """Initialize the AWS session."""
        session_kwargs = {}
        if self.profile:
            session_kwargs["profile_name"] = self.profile
        # An explicit region overrides both the profile and AWS_DEFAULT_REGION
        if self.region:
            session_kwargs["region_name"] = self.region

        self.session = boto3.Session(**session_kwargs)

    @property
    def client_config(self) -> BotoConfig:
        """Client configuration shared by every service client.

        botocore's own retries are disabled so throttling surfaces immediately and
        is handled by the inventory's retry governor.
        """
        return BotoConfig(
            retries={"max_attempts": 1, "mode": "standard"},
            max_pool_connections=self.max_pool_connections,
        )

    def validate_session(self) -> bool:
        """
        Validate that the AWS session is active and credentials are valid.

        Returns:
            True if the session is valid, False otherwise

        Raises:
            RuntimeError: If session is not initialized
        """
        if self.session is None:
            raise RuntimeError("Session not initialized")

        try:
            # get_caller_identity needs no permissions and fails on missing or expired credentials
            self.get_client("sts").get_caller_identity()
            return True
        except (BotoCoreError, ClientError) as e:
            logger.debug(f"Session validation failed: {e}")
            return False

    def get_client(self, service_name: str) -> Any:
        """
        Get an AWS service client, creating it on first use.

        Args:
            service_name: Name of the AWS service

        Returns:
            AWS service client
        """
        if self.session is None:
            raise RuntimeError("Session not initialized")
        if service_name not in self._clients:
            self._clients[service_name] = self.session.client(
                service_name, config=self.client_config
            )
        return self._clients[service_name]

    def get_organizations_client(self) -> Any:
        return self.get_client("organizations")

    def get_identity_center_client(self) -> Any:
        return self.get_client("sso-admin")

    def get_identity_store_client(self) -> Any:
        return self.get_client("identitystore")

    def get_region(self) -> Optional[str]:
        """Region the session resolved to, if any."""
        if self.session is None:
            return self.region
        return self.session.region_name
