"""
GitHub capability set: repositories, Actions secrets, pushing files.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Any, Dict, List

import structlog
from nacl import encoding, public

from ..mcp.dispatcher import Capability
from ..mcp.schema import ToolDefinition
from .base import ToolProvider, require_mapping


logger = structlog.get_logger(__name__)

GITHUB_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}
DEFAULT_COMMIT_MESSAGE = "🚀 Update from ShipMe"


def seal_secret(public_key_b64: str, secret_value: str) -> str:
    """Encrypt a value for the Actions secrets API (libsodium sealed box)."""
    key = public.PublicKey(public_key_b64.encode("utf-8"), encoding.Base64Encoder())
    sealed = public.SealedBox(key).encrypt(secret_value.encode("utf-8"))
    return base64.b64encode(sealed).decode("utf-8")


class GitHubProvider(ToolProvider):
    name = "github"

    def capabilities(self) -> List[Capability]:
        return [
            Capability(CREATE_REPOSITORY, self.create_repository),
            Capability(CREATE_SECRET, self.create_secret),
            Capability(PUSH_FILES, self.push_files),
        ]

    async def create_repository(self, args: Dict[str, Any]) -> Dict[str, Any]:
        user = require_mapping(
            await self.call("GitHub user fetch", lambda: self.client.get("/user")), "user"
        )
        name = args["name"]
        template_owner = args.get("template_owner")
        template_repo = args.get("template_repo")

        if template_owner and template_repo:
            body = {
                "owner": user["login"],
                "name": name,
                "description": args["description"],
                "private": args["private"],
                "include_all_branches": False,
            }
            repo = await self.call(
                "GitHub repository creation",
                lambda: self.client.post(f"/repos/{template_owner}/{template_repo}/generate", json=body),
            )
        else:
            body = {
                "name": name,
                "description": args["description"],
                "private": args["private"],
                "auto_init": True,
                "gitignore_template": "Node",
            }
            repo = await self.call(
                "GitHub repository creation", lambda: self.client.post("/user/repos", json=body)
            )

        repo = require_mapping(repo, "repository creation")
        return {
            "repo_url": repo.get("html_url"),
            "clone_url": repo.get("clone_url"),
            "ssh_url": repo.get("ssh_url"),
            "owner": user["login"],
            "repo_name": name,
        }

    async def create_secret(self, args: Dict[str, Any]) -> Dict[str, Any]:
        owner, repo, secret_name = args["owner"], args["repo"], args["secret_name"]
        secret_value = self.resolve(args["secret_value"])

        key = require_mapping(
            await self.call(
                "GitHub public key fetch",
                lambda: self.client.get(f"/repos/{owner}/{repo}/actions/secrets/public-key"),
            ),
            "public key",
        )
        encrypted_value = seal_secret(key["key"], secret_value)

        await self.call(
            "GitHub secret upsert",
            lambda: self.client.put(
                f"/repos/{owner}/{repo}/actions/secrets/{secret_name}",
                json={"encrypted_value": encrypted_value, "key_id": key["key_id"]},
            ),
        )
        return {
            "secret_name": secret_name,
            "message": f"Secret '{secret_name}' created successfully",
        }

    async def push_files(self, args: Dict[str, Any]) -> Dict[str, Any]:
        owner, repo, files = args["owner"], args["repo"], args["files"]
        branch = args["branch"]
        base = f"/repos/{owner}/{repo}/git"

        ref = require_mapping(
            await self.call("GitHub ref fetch", lambda: self.client.get(f"{base}/ref/heads/{branch}")),
            "ref",
        )
        head_sha = ref["object"]["sha"]
        commit = require_mapping(
            await self.call("GitHub commit fetch", lambda: self.client.get(f"{base}/commits/{head_sha}")),
            "commit",
        )

        async def _blob(file: Dict[str, Any]) -> Dict[str, Any]:
            content = base64.b64encode(file["content"].encode("utf-8")).decode("ascii")
            blob = await self.call(
                "GitHub blob creation",
                lambda: self.client.post(f"{base}/blobs", json={"content": content, "encoding": "base64"}),
            )
            return {"path": file["path"], "mode": "100644", "type": "blob", "sha": blob["sha"]}

        uploads = [asyncio.ensure_future(_blob(f)) for f in files]
        try:
            tree_entries = await asyncio.gather(*uploads)
        except BaseException:
            # no upload may outlive the call once one has failed
            for upload in uploads:
                upload.cancel()
            await asyncio.gather(*uploads, return_exceptions=True)
            raise

        tree = await self.call(
            "GitHub tree creation",
            lambda: self.client.post(
                f"{base}/trees", json={"tree": list(tree_entries), "base_tree": commit["tree"]["sha"]}
            ),
        )
        new_commit = await self.call(
            "GitHub commit creation",
            lambda: self.client.post(
                f"{base}/commits",
                json={"message": args["message"], "tree": tree["sha"], "parents": [head_sha]},
            ),
        )
        await self.call(
            "GitHub ref update",
            lambda: self.client.patch(f"{base}/refs/heads/{branch}", json={"sha": new_commit["sha"]}),
        )

        logger.info("github_files_pushed", owner=owner, repo=repo, files=len(files))
        return {
            "commit_sha": new_commit["sha"],
            "files_pushed": len(files),
            "message": f"Pushed {len(files)} file(s) to {owner}/{repo}",
        }


CREATE_REPOSITORY = ToolDefinition(
    name="create_repository",
    description="Create a new GitHub repository. Can optionally use a template repository.",
    inputSchema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Repository name"},
            "description": {"type": "string", "description": "Repository description"},
            "private": {
                "type": "boolean",
                "description": "Whether the repository should be private",
                "default": False,
            },
            "template_owner": {"type": "string", "description": "Template repository owner (optional)"},
            "template_repo": {"type": "string", "description": "Template repository name (optional)"},
        },
        "required": ["name", "description"],
    },
)

CREATE_SECRET = ToolDefinition(
    name="create_secret",
    description="Add an encrypted secret to a GitHub repository for use in Actions",
    inputSchema={
        "type": "object",
        "properties": {
            "owner": {"type": "string", "description": "Repository owner username"},
            "repo": {"type": "string", "description": "Repository name"},
            "secret_name": {"type": "string", "description": "Name of the secret (e.g., SUPABASE_URL)"},
            "secret_value": {
                "type": "string",
                "description": "Value of the secret or a {{secrets.<name>}} vault reference",
            },
        },
        "required": ["owner", "repo", "secret_name", "secret_value"],
    },
)

PUSH_FILES = ToolDefinition(
    name="push_files",
    description="Push files to a GitHub repository",
    inputSchema={
        "type": "object",
        "properties": {
            "owner": {"type": "string", "description": "Repository owner username"},
            "repo": {"type": "string", "description": "Repository name"},
            "files": {
                "type": "array",
                "description": "Array of files to push",
                "items": {
                    "type": "object",
                    "properties": {
                        "path": {"type": "string", "description": "File path in repository"},
                        "content": {"type": "string", "description": "File content"},
                    },
                    "required": ["path", "content"],
                },
            },
            "message": {
                "type": "string",
                "description": "Commit message",
                "default": DEFAULT_COMMIT_MESSAGE,
            },
            "branch": {"type": "string", "description": "Branch to update", "default": "main"},
        },
        "required": ["owner", "repo", "files"],
    },
)
