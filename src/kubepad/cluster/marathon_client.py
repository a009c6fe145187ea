"""
Marathon REST client.

Thin wrapper over the parts of the Marathon v2 API the grid needs:

    GET  v2/apps?label=<ENABLE>==true&embed=apps.deployments
    PUT  v2/apps/{app_id}?force=<bool>        body {"instances": n}
    GET  v2/deployments

Requests are authenticated with a DC/OS ACS token sent as
``Authorization: token=<token>``.

Usage:
    client = MarathonClient("https://dcos.example.com/service/marathon/", access_token=token)
    apps = client.list_apps("LAUNCHPAD_ENABLE")
    client.update_app(apps[0]["id"], instances=3)
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from kubepad.exceptions import ConfigurationError
from kubepad.models import MarathonConfig

logger = logging.getLogger(__name__)

MARATHON_SERVICE_PATH = "service/marathon/"


class MarathonClient:
    """
    HTTP client for the Marathon API.

    Args:
        api_endpoint: Marathon base URL
        access_token: DC/OS ACS token (None = unauthenticated)
        timeout: Request timeout in seconds
        session: Session to use (default: a new requests.Session)
    """

    def __init__(
        self,
        api_endpoint: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_endpoint = api_endpoint.rstrip("/") + "/"
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})
        if access_token:
            self.session.headers["Authorization"] = f"token={access_token}"

    @classmethod
    def from_config(cls, config: MarathonConfig) -> "MarathonClient":
        """
        Build a client from the marathon config section.

        A DC/OS CLI config (``dcos.toml``) supplies both the endpoint
        (``core.dcos_url`` + ``service/marathon/``) and the token
        (``core.dcos_acs_token``). An explicit ``access_token_file`` wins
        over the token from ``dcos.toml``.

        Raises:
            ConfigurationError: If a configured file cannot be read
        """
        endpoint = config.api_endpoint
        token = None

        if config.dcos_config_file is not None:
            dcos_url, token = _read_dcos_config(config.dcos_config_file)
            if dcos_url:
                endpoint = dcos_url.rstrip("/") + "/" + MARATHON_SERVICE_PATH

        if config.access_token_file is not None:
            token = _read_token_file(config.access_token_file)

        if not token:
            logger.warning("No Marathon access token configured; requests are unauthenticated")

        logger.info(f"Connecting to Marathon at {endpoint}")
        return cls(endpoint, access_token=token, timeout=config.timeout)

    # =========================================================================
    # APPS
    # =========================================================================

    def list_apps(self, enable_label: str = "LAUNCHPAD_ENABLE") -> List[Dict[str, Any]]:
        """
        List apps carrying ``<enable_label>=true``, with their running deployments.

        Raises:
            requests.RequestException: If the request fails
        """
        data = self._request(
            "GET",
            "v2/apps",
            params={"label": f"{enable_label}==true", "embed": "apps.deployments"},
        )
        return data.get("apps", [])

    def update_app(self, app_id: str, instances: int, force: bool = False) -> Dict[str, Any]:
        """
        Set the instance count of an app.

        Returns:
            Update result (``deploymentId``, ``version``)

        Raises:
            requests.RequestException: If the request fails
        """
        return self._request(
            "PUT",
            f"v2/apps/{app_id.lstrip('/')}",
            params={"force": "true" if force else "false"},
            json={"instances": instances},
        )

    # =========================================================================
    # DEPLOYMENTS
    # =========================================================================

    def list_deployments(self) -> List[Dict[str, Any]]:
        """
        List running deployments.

        Raises:
            requests.RequestException: If the request fails
        """
        return self._request("GET", "v2/deployments")

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self.api_endpoint + path
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response.json()


def _read_token_file(path: Path) -> str:
    try:
        return path.expanduser().read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigurationError(
            user_message=f"Cannot read Marathon access token file {path}",
            technical_message=f"Reading {path} failed: {e}",
            recovery_hint="Check marathon.access_token_file in the config",
        ) from e


def _read_dcos_config(path: Path) -> tuple[Optional[str], Optional[str]]:
    try:
        with path.expanduser().open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            user_message=f"Cannot read DC/OS config {path}",
            technical_message=f"Loading {path} failed: {e}",
            recovery_hint="Run 'dcos auth login' or check marathon.dcos_config_file",
        ) from e

    core = data.get("core", {})
    return core.get("dcos_url"), core.get("dcos_acs_token")
