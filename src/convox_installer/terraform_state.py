"""Read resource attributes out of a terraform.tfstate document"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from convox_installer.errors import ResourceNotFoundError


@dataclass
class ResourceHandle:
    resource_type: str
    resource_name: str
    attributes: dict[str, Any] = field(default_factory=dict)

    def resolve(self, state: dict[str, Any]) -> ResourceHandle:
        self.attributes = resource(state, self.resource_type, self.resource_name)
        return self


def load_state(path: os.PathLike | str) -> dict[str, Any]:
    state_file = Path(path)
    if not state_file.exists():
        raise ResourceNotFoundError("terraform_state", str(state_file), f"Terraform state not found: '{state_file}'")
    return json.loads(state_file.read_text())


def resource(state: dict[str, Any], resource_type: str, resource_name: str) -> dict[str, Any]:
    """Attributes of the first resource matching (type, name)"""
    for entry in state.get("resources") or []:
        if entry.get("type") != resource_type or entry.get("name") != resource_name:
            continue
        instances: list[dict[str, Any]] = entry.get("instances") or []
        if instances:
            return instances[0].get("attributes") or {}
        break

    raise ResourceNotFoundError(resource_type, resource_name)


def database_url(attributes: dict[str, Any], scheme: str = "postgres") -> str:
    username = attributes["username"]
    password = attributes["password"]
    endpoint = attributes["endpoint"]
    database = attributes.get("db_name") or attributes.get("name")

    url = f"{scheme}://{username}:{password}@{endpoint}"
    if database:
        url += f"/{database}"
    return url


def redis_url(attributes: dict[str, Any], database: int = 0) -> str:
    cache_nodes: list[dict[str, Any]] = attributes.get("cache_nodes") or []
    node: dict[str, Any] = cache_nodes[0] if cache_nodes else attributes
    return f"redis://{node['address']}:{node['port']}/{database}"
