"""Per-run secret storage."""

from .context import ProvisioningRun
from .secret_vault import (
    SECRET_REFERENCE,
    Secret,
    SecretVault,
    VaultState,
    VaultStatus,
    generate_password,
    mask_secret,
)

__all__ = [
    "ProvisioningRun",
    "SECRET_REFERENCE",
    "Secret",
    "SecretVault",
    "VaultState",
    "VaultStatus",
    "generate_password",
    "mask_secret",
]
