"""Application configuration model."""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_serializer, field_validator

from .enums import ClusterService

DEFAULT_CONFIG_PATH = Path.home() / ".kubepad" / "config.json"
CLUSTER_SERVICE_ENV = "KUBEPAD_CLUSTER_SERVICE"


class KubernetesConfig(BaseModel):
    """Kubernetes backend settings."""

    namespace: str = Field(default="default", min_length=1, description="Namespace to watch")
    context: str | None = Field(
        default=None, description="kubeconfig context (None = current context)"
    )
    in_cluster: bool = Field(
        default=False, description="Use the service account of the pod kubepad runs in"
    )


class OpenShiftConfig(BaseModel):
    """OpenShift backend settings."""

    project: str = Field(default="myproject", min_length=1, description="Project to watch")
    url: str | None = Field(
        default=None, description="Master URL (None = taken from kubeconfig)"
    )
    context: str | None = Field(default=None, description="kubeconfig context")
    verify_ssl: bool = Field(default=False, description="Verify the master's certificate")


class MarathonConfig(BaseModel):
    """Marathon (DC/OS) backend settings."""

    api_endpoint: str = Field(
        default="http://localhost:8080/",
        description="Marathon base URL, e.g. https://dcos.example.com/service/marathon/",
    )
    access_token_file: Path | None = Field(
        default=None, description="File holding the DC/OS ACS token"
    )
    dcos_config_file: Path | None = Field(
        default=None,
        description="DC/OS CLI config (dcos.toml) providing core.dcos_url and core.dcos_acs_token",
    )
    poll_interval: float = Field(default=2.5, gt=0, description="Seconds between re-listings")
    force: bool = Field(default=False, description="Force scale requests past running deployments")
    timeout: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")

    @field_serializer("access_token_file", "dcos_config_file")
    def serialize_path(self, path: Path | None) -> str | None:
        """Serialize Path to string."""
        return str(path) if path is not None else None


class LabelConfig(BaseModel):
    """Reserved label keys read from workloads."""

    enable: str = Field(default="LAUNCHPAD_ENABLE", min_length=1, description="Admission flag")
    row: str = Field(default="LAUNCHPAD_ROW", min_length=1, description="Preferred row hint")
    color: str = Field(default="LAUNCHPAD_COLOR", min_length=1, description="Row color override")


class KubepadConfig(BaseModel):
    """Application configuration and settings."""

    cluster_service: str = Field(
        default=ClusterService.KUBERNETES.value,
        description="Registered backend that drives the grid (built-in: kubernetes, openshift, marathon)",
    )
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    openshift: OpenShiftConfig = Field(default_factory=OpenShiftConfig)
    marathon: MarathonConfig = Field(default_factory=MarathonConfig)
    labels: LabelConfig = Field(default_factory=LabelConfig)
    scale_workers: int = Field(
        default=4, ge=1, le=32, description="Worker threads dispatching scale requests"
    )

    @field_validator("cluster_service")
    @classmethod
    def normalize_cluster_service(cls, v: str) -> str:
        """Backend names are matched case-insensitively."""
        name = v.strip().lower()
        if not name:
            raise ValueError("backend name must not be empty")
        return name

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "KubepadConfig":
        """
        Load config from file or return default.

        The KUBEPAD_CLUSTER_SERVICE environment variable overrides
        ``cluster_service``.

        Args:
            path: Path to config file. If None, uses ~/.kubepad/config.json.

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        from kubepad.core.persistence import PydanticPersistence

        config = PydanticPersistence.load_json_or_default(path or DEFAULT_CONFIG_PATH, cls)

        override = os.environ.get(CLUSTER_SERVICE_ENV)
        if override:
            config = config.with_cluster_service(override)
        return config

    def with_cluster_service(self, service: str | ClusterService) -> "KubepadConfig":
        """
        Copy with another backend selected.

        The name is not checked against the registry here; create_cluster
        rejects names no backend is registered under.

        Raises:
            ConfigValidationError: If the name is empty
        """
        from kubepad.exceptions import ConfigValidationError

        name = str(getattr(service, "value", service)).strip().lower()
        if not name:
            raise ConfigValidationError("cluster_service", service, "backend name must not be empty")
        return self.model_copy(update={"cluster_service": name})

    def save(self, path: Path | None = None) -> None:
        """Save config to file."""
        from kubepad.core.persistence import PydanticPersistence

        PydanticPersistence.save_json(self, path or DEFAULT_CONFIG_PATH)
