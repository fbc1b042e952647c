"""Secret-handling tools shared by every provider server."""

from typing import Any, Dict, List

from ..mcp.dispatcher import Capability
from ..mcp.schema import ToolDefinition
from ..vault.context import ProvisioningRun
from ..vault.secret_vault import generate_password, mask_secret


def vault_capabilities(run: ProvisioningRun) -> List[Capability]:
    vault = run.vault

    def store_secret(args: Dict[str, Any]) -> Dict[str, Any]:
        name = args["name"]
        vault.store(name, args["value"])
        return {
            "name": name,
            "reference": f"{{{{secrets.{name}}}}}",
            "message": f"Secret '{name}' stored in vault",
        }

    def generate_secret(args: Dict[str, Any]) -> Dict[str, Any]:
        name = args["name"]
        value = generate_password(args["length"])
        vault.store(name, value)
        return {
            "name": name,
            "reference": f"{{{{secrets.{name}}}}}",
            "preview": mask_secret(value),
        }

    def list_secrets(args: Dict[str, Any]) -> Dict[str, Any]:
        status = vault.status()
        return {"names": vault.list_keys(), "secret_count": status.secret_count}

    name_field = {
        "type": "string",
        "description": "Secret name; reference it later as {{secrets.<name>}}",
        "pattern": r"^\w+$",
    }

    return [
        Capability(
            ToolDefinition(
                name="store_secret",
                description="Store a credential in the run's encrypted in-memory vault",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": name_field,
                        "value": {"type": "string", "description": "Secret value"},
                    },
                    "required": ["name", "value"],
                },
            ),
            store_secret,
        ),
        Capability(
            ToolDefinition(
                name="generate_secret",
                description="Generate a random password and keep it in the vault; only a masked preview is returned",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": name_field,
                        "length": {"type": "integer", "description": "Password length", "default": 32, "minimum": 1},
                    },
                    "required": ["name"],
                },
            ),
            generate_secret,
        ),
        Capability(
            ToolDefinition(
                name="list_secrets",
                description="List the names of secrets held in the vault (never their values)",
                inputSchema={"type": "object", "properties": {}},
            ),
            list_secrets,
        ),
    ]
