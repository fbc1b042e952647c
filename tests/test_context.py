import pytest

from shipme.mcp.errors import VaultDestroyedError
from shipme.vault import ProvisioningRun


def test_resolve_arguments_walks_nested_structures():
    with ProvisioningRun() as run:
        run.vault.store("key", "value")
        resolved = run.resolve_arguments(
            {
                "plain": "text",
                "nested": {"ref": "{{secrets.key}}"},
                "items": ["a", "prefix-{{secrets.key}}"],
                "count": 3,
            }
        )

    assert resolved == {
        "plain": "text",
        "nested": {"ref": "value"},
        "items": ["a", "prefix-value"],
        "count": 3,
    }


def test_vault_destroyed_on_exit_even_after_error():
    run = ProvisioningRun()
    with pytest.raises(RuntimeError):
        with run:
            run.vault.store("k", "v")
            raise RuntimeError("step failed")

    assert run.vault.status().destroyed
    with pytest.raises(VaultDestroyedError):
        run.vault.retrieve("k")


@pytest.mark.asyncio
async def test_async_context_destroys_vault():
    async with ProvisioningRun() as run:
        run.vault.store("k", "v")
        assert run.resolve_arguments("{{secrets.k}}") == "v"

    assert run.vault.status().destroyed
