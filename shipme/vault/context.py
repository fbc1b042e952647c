from __future__ import annotations

from typing import Any, Optional

import structlog

from .secret_vault import SecretVault


logger = structlog.get_logger(__name__)


class ProvisioningRun:
    """Owns the vault for one orchestration run: construct -> use -> destroy.

    Usable as a sync or async context manager; the vault is destroyed on exit
    whether or not the run succeeded.
    """

    def __init__(self, vault: Optional[SecretVault] = None) -> None:
        self.vault = vault or SecretVault()

    def resolve_arguments(self, value: Any) -> Any:
        """Resolve ``{{secrets.x}}`` references in every string, recursively."""
        if isinstance(value, str):
            return self.vault.resolve(value)
        if isinstance(value, dict):
            return {k: self.resolve_arguments(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.resolve_arguments(v) for v in value]
        return value

    def close(self) -> None:
        self.vault.destroy()

    def __enter__(self) -> "ProvisioningRun":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> "ProvisioningRun":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()
