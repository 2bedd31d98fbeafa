"""
Style preference tools.

Six tools over a StyleConfigStore: save, list and delete named styles,
and set, remove and resolve folder associations.
"""

import logging
import re
from typing import Any, List

from tool_ledger.config.styles import StyleConfigStore, StyleScope, normalize_folder_path

from .tools import ToolInputError, ToolResult, WrappedTool, WrapToolFn

logger = logging.getLogger(__name__)

STYLE_NAME_PATTERN = re.compile(r"^[a-z0-9\-_]+$", re.IGNORECASE)
MAX_STYLE_NAME_LENGTH = 50
MAX_TAGS = 10

_SCOPE_DESCRIPTION = "Where to store it: 'global' (all projects) or 'project' (this project only)"


def _validate_style_name(name: Any) -> str:
    if not isinstance(name, str) or not name:
        raise ToolInputError("'name' must be a non-empty string")
    if len(name) > MAX_STYLE_NAME_LENGTH:
        raise ToolInputError(f"'name' must be at most {MAX_STYLE_NAME_LENGTH} characters")
    if not STYLE_NAME_PATTERN.match(name):
        raise ToolInputError("'name' may only contain letters, digits, hyphens and underscores")
    return name


def _validate_tags(tags: Any) -> List[str]:
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise ToolInputError("'tags' must be a list of strings")
    if not 1 <= len(tags) <= MAX_TAGS:
        raise ToolInputError(f"'tags' must contain between 1 and {MAX_TAGS} tags")
    return tags


def _validate_scope(scope: Any) -> StyleScope:
    try:
        return StyleScope(scope)
    except ValueError:
        raise ToolInputError("'scope' must be 'global' or 'project'")


def _validate_folder(folder: Any) -> str:
    if not isinstance(folder, str) or not folder:
        raise ToolInputError("'folder' must be a non-empty path")
    return folder


def _failure(action: str, error: Exception) -> ToolResult:
    logger.error("Failed to %s: %s", action, error)
    return ToolResult(text=f"Failed to {action}: {error}", is_error=True)


def style_tools(store: StyleConfigStore, wrap_tool: WrapToolFn) -> List[WrappedTool]:
    """Build the style tools, each passed through ``wrap_tool``.

    Args:
        store: Style store backing every tool
        wrap_tool: Metrics or identity wrapper

    Returns:
        The six style tools
    """
    def save_style(name: str, tags: List[str], scope: str = StyleScope.PROJECT.value) -> ToolResult:
        name = _validate_style_name(name)
        tags = _validate_tags(tags)
        scope_value = _validate_scope(scope)
        try:
            store.save_style(name, tags, scope_value)
        except (OSError, ValueError) as e:
            return _failure("save style", e)
        return ToolResult(
            text=f"Saved style '{name}' ({scope_value.value}): {', '.join(tags)}"
        )

    def list_styles() -> ToolResult:
        merged = store.merge()
        if not merged.styles:
            return ToolResult(text="No styles saved yet. Use save_style to create one.")

        lines = ["Saved styles:", ""]
        for name in sorted(merged.styles):
            lines.append(
                f"- {name} [{merged.sources.styles[name]}]: {', '.join(merged.styles[name])}"
            )
        if merged.folders:
            lines.extend(["", "Folder associations:", ""])
            for folder in sorted(merged.folders):
                lines.append(
                    f"- {folder or '/'} -> {merged.folders[folder]} "
                    f"[{merged.sources.folders[folder]}]"
                )
        return ToolResult(text="\n".join(lines))

    def delete_style(name: str, scope: str = StyleScope.PROJECT.value) -> ToolResult:
        name = _validate_style_name(name)
        scope_value = _validate_scope(scope)
        try:
            deleted = store.delete_style(name, scope_value)
        except OSError as e:
            return _failure("delete style", e)
        if not deleted:
            return ToolResult(
                text=f"Style '{name}' not found in {scope_value.value} config",
                is_error=True,
            )
        return ToolResult(
            text=f"Deleted style '{name}' from {scope_value.value} config "
                 "(folder associations to it in that config were removed too)"
        )

    def set_folder_style(folder: str, style: str, scope: str = StyleScope.PROJECT.value) -> ToolResult:
        folder = _validate_folder(folder)
        style = _validate_style_name(style)
        scope_value = _validate_scope(scope)
        tags = store.get_style_tags(style)
        if tags is None:
            return ToolResult(
                text=f"Style '{style}' does not exist. Create it first with save_style.",
                is_error=True,
            )
        try:
            normalized = store.set_folder_style(folder, style, scope_value)
        except OSError as e:
            return _failure("set folder style", e)
        return ToolResult(
            text=f"Folder '{normalized or '/'}' now uses style '{style}' "
                 f"({scope_value.value}): {', '.join(tags)}"
        )

    def remove_folder_style(folder: str, scope: str = StyleScope.PROJECT.value) -> ToolResult:
        folder = _validate_folder(folder)
        scope_value = _validate_scope(scope)
        try:
            removed = store.remove_folder_style(folder, scope_value)
        except OSError as e:
            return _failure("remove folder style", e)
        if not removed:
            return ToolResult(
                text=f"No style association for '{folder}' in {scope_value.value} config",
                is_error=True,
            )
        return ToolResult(text=f"Removed style association for '{folder}' ({scope_value.value})")

    def get_folder_style(folder: str) -> ToolResult:
        folder = _validate_folder(folder)
        match = store.resolve_folder(folder)
        if match is None:
            return ToolResult(text=f"No style configured for '{folder}' or any parent folder")

        lines = [f"Style for '{folder}': {match.style}", f"Tags: {', '.join(match.tags)}"]
        if match.matched_path != normalize_folder_path(folder):
            lines.append(f"Inherited from: {match.matched_path or '/'}")
        return ToolResult(text="\n".join(lines))

    return [
        wrap_tool(
            "save_style",
            "Save a named style preset made of tags, in the global or project config",
            {
                "name": "Style name (letters, digits, hyphens, underscores; max 50)",
                "tags": "Between 1 and 10 tags describing the style",
                "scope": _SCOPE_DESCRIPTION,
            },
            save_style,
        ),
        wrap_tool(
            "list_styles",
            "List all saved styles and folder associations, with the scope each comes from",
            {},
            list_styles,
        ),
        wrap_tool(
            "delete_style",
            "Delete a named style and the folder associations to it in the same scope",
            {"name": "Style name to delete", "scope": _SCOPE_DESCRIPTION},
            delete_style,
        ),
        wrap_tool(
            "set_folder_style",
            "Associate a folder with an existing style; subfolders inherit it",
            {
                "folder": "Folder path",
                "style": "Name of an existing style",
                "scope": _SCOPE_DESCRIPTION,
            },
            set_folder_style,
        ),
        wrap_tool(
            "remove_folder_style",
            "Remove a folder's style association",
            {"folder": "Folder path", "scope": _SCOPE_DESCRIPTION},
            remove_folder_style,
        ),
        wrap_tool(
            "get_folder_style",
            "Get the style for a folder, inherited from the nearest configured parent",
            {"folder": "Folder path"},
            get_folder_style,
        ),
    ]
