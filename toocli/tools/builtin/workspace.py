"""
Workspace-scoped file and command tools.

All paths are resolved relative to the workspace root. Attempts to reach
outside the workspace are rejected with a ValueError, which the registry
reports back to the model as a tool error.
"""

import os
import subprocess
from pathlib import Path


class Workspace:
    """Root directory shared by the built-in tools of one conversation."""

    def __init__(self, root: "str | Path", command_timeout: int = 60):
        self.root = Path(root).expanduser().resolve()
        self.command_timeout = command_timeout

    def resolve(self, file_path: str) -> Path:
        """
        Resolve a path relative to the workspace, rejecting traversal attempts.

        Raises:
            ValueError: If the path escapes the workspace.
        """
        if os.path.isabs(file_path):
            file_path = os.path.relpath(file_path, self.root)

        full_path = (self.root / file_path).resolve()

        try:
            full_path.relative_to(self.root)
        except ValueError:
            raise ValueError(
                f"Access denied: '{file_path}' is outside the workspace boundary."
            )

        return full_path

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    def read_file(self, filePath: str) -> str:
        resolved = self.resolve(filePath)

        if not resolved.exists():
            raise FileNotFoundError(f"File not found: {filePath}")
        if not resolved.is_file():
            raise ValueError(f"'{filePath}' is a directory, not a file.")

        try:
            return resolved.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return resolved.read_bytes().decode("utf-8", errors="replace")

    def write_file(self, filePath: str, content: str) -> str:
        resolved = self.resolve(filePath)
        resolved.parent.mkdir(parents=True, exist_ok=True)

        existed = resolved.exists()
        resolved.write_text(content, encoding="utf-8")

        lines = content.count("\n") + 1
        size = len(content.encode("utf-8"))
        action = "Updated" if existed else "Created"
        return f"{action} '{filePath}' ({size} bytes, {lines} lines)."

    def list_files(self, dirPath: str = ".", recursive: bool = False) -> str:
        resolved = self.resolve(dirPath)

        if not resolved.exists():
            raise FileNotFoundError(f"Directory not found: {dirPath}")
        if not resolved.is_dir():
            raise ValueError(f"'{dirPath}' is not a directory.")

        entries = sorted(resolved.rglob("*") if recursive else resolved.iterdir())
        lines = []
        for entry in entries:
            rel = entry.relative_to(resolved).as_posix()
            if entry.is_dir():
                lines.append(f"[DIR]  {rel}/")
            else:
                lines.append(f"[FILE] {rel} ({entry.stat().st_size} bytes)")

        if not lines:
            return f"Directory '{dirPath}' is empty."
        return f"Contents of '{dirPath}':\n" + "\n".join(lines)

    def execute_command(self, command: str) -> str:
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
            )
        except subprocess.TimeoutExpired:
            raise TimeoutError(f"Command timed out after {self.command_timeout} seconds.")

        parts = []
        if result.stdout:
            parts.append(result.stdout)
        if result.stderr:
            if parts:
                parts.append("\n[STDERR]:\n")
            parts.append(result.stderr)

        output = "".join(parts).strip()

        if result.returncode != 0:
            output += f"\n\n[Exit code: {result.returncode}]"

        return output or f"Command completed (exit code: {result.returncode})."
