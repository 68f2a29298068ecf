"""Package manager adapters (workspace manifest + install)."""

from .package_manager import (
    BunAdapter,
    DenoAdapter,
    NpmAdapter,
    PackageManagerAdapter,
    PnpmAdapter,
    adapter_for,
    detect_adapter,
)

__all__ = [
    "BunAdapter",
    "DenoAdapter",
    "NpmAdapter",
    "PackageManagerAdapter",
    "PnpmAdapter",
    "adapter_for",
    "detect_adapter",
]
