"""
Netlify capability set: site creation, environment variables, deploys, site info.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

import structlog

from ..mcp.dispatcher import Capability
from ..mcp.errors import PermanentError, ShipMeError, ValidationError
from ..mcp.poller import status_in
from ..mcp.schema import ToolDefinition
from .base import ToolProvider, require_mapping


logger = structlog.get_logger(__name__)

DEPLOY_READY_STATES = ("ready",)
DEPLOY_FAILED_STATES = ("error", "rejected")


def slugify_site_name(name: str) -> str:
    return re.sub(r"[^a-z0-9-]", "-", name.lower())


class NetlifyProvider(ToolProvider):
    name = "netlify"

    def capabilities(self) -> List[Capability]:
        return [
            Capability(CREATE_SITE, self.create_site),
            Capability(CONFIGURE_ENV_VARS, self.configure_env_vars),
            Capability(DEPLOY_SITE, self.deploy_site),
            Capability(GET_SITE_INFO, self.get_site_info),
        ]

    async def create_site(self, args: Dict[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": slugify_site_name(args["name"])}

        repo = args.get("repo")
        if repo:
            owner, _, repo_name = repo.partition("/")
            if not owner or not repo_name:
                raise ValidationError('Repository must be in format "owner/repo"')
            body["repo"] = {
                "provider": "github",
                "repo": repo,
                "private": False,
                "branch": args["branch"],
                "cmd": args["build_command"],
                "dir": args["publish_dir"],
            }

        site = require_mapping(
            await self.call("Netlify site creation", lambda: self.client.post("/sites", json=body)),
            "site creation",
        )
        return {
            "site_id": site.get("id"),
            "site_name": site.get("name"),
            "url": site.get("url") or f"https://{site.get('name')}.netlify.app",
            "admin_url": site.get("admin_url"),
            "deploy_url": site.get("deploy_url"),
        }

    async def configure_env_vars(self, args: Dict[str, Any]) -> Dict[str, Any]:
        site_id = args["site_id"]
        env_vars: Dict[str, Any] = args["env_vars"]

        set_count = 0
        errors: List[str] = []
        for key, raw_value in env_vars.items():
            value = self.resolve(str(raw_value))
            try:
                await self.client.post(
                    f"/accounts/-/env/{key}",
                    json={
                        "context": "production",
                        "scope": "builds",
                        "values": [{"value": value, "context": "all"}],
                    },
                )
                set_count += 1
                continue
            except ShipMeError as e:
                if e.status is None:
                    errors.append(f"Error setting {key}: {e}")
                    continue
                logger.debug("netlify_account_env_rejected", variable=key, status=e.status)

            # site-level fallback
            try:
                await self.client.patch(f"/sites/{site_id}/env", json={key: value})
                set_count += 1
            except Exception as e:
                errors.append(f"Failed to set {key}: {e}")

        if errors and set_count == 0:
            raise PermanentError(f"Failed to set environment variables: {', '.join(errors)}")

        message = f"Set {set_count} environment variable(s)"
        if errors:
            message += f" ({len(errors)} failed)"
        return {"vars_set": set_count, "failed": errors, "message": message}

    async def deploy_site(self, args: Dict[str, Any]) -> Dict[str, Any]:
        site_id = args["site_id"]
        build = require_mapping(
            await self.call(
                "Netlify deploy trigger",
                lambda: self.client.post(f"/sites/{site_id}/builds", json={"clear_cache": args["clear_cache"]}),
            ),
            "build trigger",
        )
        deploy_id = build.get("deploy_id")
        state = build.get("state")

        if args["wait"] and deploy_id:
            outcome = await self.wait_for(
                f"Netlify deploy {deploy_id}",
                lambda: self._deploy_state(deploy_id),
                status_in(DEPLOY_READY_STATES),
                status_in(DEPLOY_FAILED_STATES),
                max_wait_time=args.get("max_wait_seconds"),
            )
            state = outcome.status

        return {
            "deploy_id": deploy_id,
            "build_id": build.get("id"),
            "deploy_url": build.get("deploy_url"),
            "state": state,
            "message": f"Deployment triggered successfully. State: {state}",
        }

    async def _deploy_state(self, deploy_id: str) -> Any:
        deploy = require_mapping(await self.client.get(f"/deploys/{deploy_id}"), "deploy status")
        return deploy.get("state")

    async def get_site_info(self, args: Dict[str, Any]) -> Dict[str, Any]:
        site = require_mapping(await self.client.get(f"/sites/{args['site_id']}"), "site info")
        return {
            "site_id": site.get("id"),
            "site_name": site.get("name"),
            "url": site.get("url") or f"https://{site.get('name')}.netlify.app",
            "admin_url": site.get("admin_url"),
            "state": site.get("state"),
            "created_at": site.get("created_at"),
            "updated_at": site.get("updated_at"),
            "build_settings": site.get("build_settings"),
        }


CREATE_SITE = ToolDefinition(
    name="create_site",
    description="Create a new Netlify site, optionally linked to a GitHub repository",
    inputSchema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Site name (lowercased, non-alphanumerics become dashes)"},
            "repo": {"type": "string", "description": 'GitHub repository in format "owner/repo" (optional)'},
            "branch": {"type": "string", "description": "Branch to build", "default": "main"},
            "build_command": {"type": "string", "description": "Build command", "default": "npm run build"},
            "publish_dir": {"type": "string", "description": "Publish directory", "default": ".next"},
        },
        "required": ["name"],
    },
)

CONFIGURE_ENV_VARS = ToolDefinition(
    name="configure_env_vars",
    description="Set environment variables for a Netlify site; values may be {{secrets.<name>}} references",
    inputSchema={
        "type": "object",
        "properties": {
            "site_id": {"type": "string", "description": "Netlify site ID"},
            "env_vars": {
                "type": "object",
                "description": "Map of variable name to value",
            },
        },
        "required": ["site_id", "env_vars"],
    },
)

DEPLOY_SITE = ToolDefinition(
    name="deploy_site",
    description="Trigger a new build and deploy for a Netlify site",
    inputSchema={
        "type": "object",
        "properties": {
            "site_id": {"type": "string", "description": "Netlify site ID"},
            "clear_cache": {"type": "boolean", "description": "Clear the build cache", "default": False},
            "wait": {"type": "boolean", "description": "Wait until the deploy is ready", "default": False},
            "max_wait_seconds": {"type": "number", "description": "Upper bound on the wait (seconds)", "minimum": 0},
        },
        "required": ["site_id"],
    },
)

GET_SITE_INFO = ToolDefinition(
    name="get_site_info",
    description="Get information about a Netlify site",
    inputSchema={
        "type": "object",
        "properties": {
            "site_id": {"type": "string", "description": "Netlify site ID"},
        },
        "required": ["site_id"],
    },
)
