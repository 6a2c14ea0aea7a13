"""Configuration management for the IPAM core."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class PolicyConfig:
    """
    Allocation policy for an address space.

    Controls how hierarchy placement and deletion behave.
    """

    # Placement policies
    allow_equal_prefix: bool = False  # Same network as parent, with extra tags

    # Deletion policies
    propagate_tags_on_delete: bool = True  # Push inheritable tags onto former children

    # Allocation
    default_available_count: int = 1  # Subnets returned by "available" searches


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class IpamConfig:
    """
    Complete configuration for the IPAM core.

    This combines all configuration sections.
    """

    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "IpamConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            IpamConfig instance
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        policy = PolicyConfig(**(data.get("policy") or {}))

        logging_data = dict(data.get("logging") or {})
        # Convert file path string to Path if present
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(policy=policy, logging=logging)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "policy": dict(self.policy.__dict__),
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "IpamConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            IPAM_ALLOW_EQUAL_PREFIX: Allow same-network child nodes (default: false)
            IPAM_PROPAGATE_TAGS_ON_DELETE: Push tags onto children on delete (default: true)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: "console" or "json" (default: console)

        Returns:
            IpamConfig instance
        """
        policy = PolicyConfig(
            allow_equal_prefix=_env_flag("IPAM_ALLOW_EQUAL_PREFIX", False),
            propagate_tags_on_delete=_env_flag("IPAM_PROPAGATE_TAGS_ON_DELETE", True),
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(policy=policy, logging=logging_config)


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable ("false", "0", "no", "off" are false)."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off", "")


def load_config(config_file: Path | None = None) -> IpamConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        IpamConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return IpamConfig.from_file(config_file)
    return IpamConfig.from_env()
