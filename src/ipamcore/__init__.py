"""IPAM Core - prefix hierarchy and tag inheritance engine."""

__version__ = "0.1.0"

from .cli import app  # noqa: E402
from .config import IpamConfig  # noqa: E402

__all__ = ["app", "IpamConfig", "__version__"]
