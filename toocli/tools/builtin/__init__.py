"""
toocli built-in tools.

``builtin_tools(workspace)`` returns ready-to-register ToolDefs bound to one
workspace::

    from toocli.tools.builtin import Workspace, builtin_tools
    registry.register_many(builtin_tools(Workspace(".")))
"""

from toocli.tools.base import ToolDef, ToolParam
from toocli.tools.builtin.workspace import Workspace


def builtin_tools(workspace: Workspace) -> list[ToolDef]:
    """Build the file and command tools for ``workspace``."""
    return [
        ToolDef(
            name="read_file",
            description="Read and return the full contents of a file in the workspace.",
            params=[
                ToolParam(name="filePath", type="string", description="Path to the file."),
            ],
            handler=workspace.read_file,
        ),
        ToolDef(
            name="write_file",
            description="Create or overwrite a file in the workspace.",
            params=[
                ToolParam(name="filePath", type="string", description="Path to the file."),
                ToolParam(name="content", type="string", description="File content."),
            ],
            handler=workspace.write_file,
        ),
        ToolDef(
            name="list_files",
            description="List the files in a workspace directory.",
            params=[
                ToolParam(
                    name="dirPath",
                    type="string",
                    description="Directory path (defaults to the workspace root).",
                    required=False,
                    default=".",
                ),
                ToolParam(
                    name="recursive",
                    type="boolean",
                    description="Whether to include subdirectories.",
                    required=False,
                    default=False,
                ),
            ],
            handler=workspace.list_files,
        ),
        ToolDef(
            name="execute_command",
            description=(
                "Execute a shell command in the workspace directory. "
                "stdout and stderr are combined."
            ),
            params=[
                ToolParam(name="command", type="string", description="Shell command to run."),
            ],
            handler=workspace.execute_command,
        ),
    ]


__all__ = ["Workspace", "builtin_tools"]
