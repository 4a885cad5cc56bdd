"""Workspace listing and display utilities."""

from typing import Optional, Union

from .api import PostmanClient
from .models import RemoteWorkspace
from .sync.state import WorkspaceRecord


def list_workspaces(client: PostmanClient) -> list[RemoteWorkspace]:
    """Get all workspaces the API key can access.

    Args:
        client: Postman API client

    Returns:
        Workspaces sorted by name
    """
    result = client.get_workspaces()
    entries = result.get("workspaces", []) if isinstance(result, dict) else []
    workspaces = [
        RemoteWorkspace.from_api_response(ws) for ws in entries if isinstance(ws, dict)
    ]
    return sorted(workspaces, key=lambda ws: ws.name.lower())


def format_workspace_display(
    workspace: Optional[Union[RemoteWorkspace, WorkspaceRecord]],
) -> str:
    """Format a workspace for display.

    Args:
        workspace: Resolved workspace, None for the default workspace

    Returns:
        Display string like "Team APIs (1f0df51a, team)"
    """
    if workspace is None:
        return "Default workspace"
    return f"{workspace.name} ({workspace.id}, {workspace.type})"
