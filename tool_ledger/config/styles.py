"""
Layered style preferences.

Stores named style presets and folder associations in two independent
scopes, a global file in the user's home directory and a project file
under the project root, and resolves a folder to its effective style.

Project settings win over global ones on conflict. Nothing is cached:
every read goes back to the files, so edits made outside this process
show up on the next call.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from tool_ledger.storage.persistence import write_text_atomic

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_PATH = Path.home() / ".mcp" / "lottie-styles.json"

# Relative to the project root
PROJECT_CONFIG_FILENAME = Path(".mcpconfig") / "lottie-styles.json"

_TRAILING_SLASHES = re.compile(r"/+$")


class StyleScope(Enum):
    """Configuration layer a style or folder association lives in."""
    GLOBAL = "global"
    PROJECT = "project"


@dataclass
class StyleConfig:
    """Contents of one scope's style file."""
    styles: Dict[str, List[str]] = field(default_factory=dict)
    folders: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict]:
        return {"styles": self.styles, "folders": self.folders}


@dataclass(frozen=True)
class StyleSources:
    """Which scope each merged style and folder came from."""
    styles: Dict[str, str]
    folders: Dict[str, str]


@dataclass(frozen=True)
class MergedStyleConfig:
    """Read-only view of both scopes with project entries overriding global ones."""
    styles: Dict[str, List[str]]
    folders: Dict[str, str]
    sources: StyleSources


@dataclass(frozen=True)
class FolderStyleMatch:
    """Style found for a folder, possibly inherited from an ancestor."""
    style: str
    tags: List[str]
    matched_path: str


def normalize_folder_path(folder: str) -> str:
    """Strip trailing slashes so ``/a/b/`` and ``/a/b`` share one key."""
    return _TRAILING_SLASHES.sub("", folder)


def _coerce_scope(scope: Union[StyleScope, str]) -> StyleScope:
    try:
        return StyleScope(scope)
    except ValueError:
        valid = [s.value for s in StyleScope]
        raise ValueError(f"scope must be one of: {valid}")


def _valid_styles(raw: Dict, path: Path) -> Dict[str, List[str]]:
    styles = {}
    for name, tags in raw.items():
        if isinstance(tags, list) and all(isinstance(tag, str) for tag in tags):
            styles[name] = list(tags)
        else:
            logger.warning("Ignoring style '%s' in %s: tags must be a list of strings", name, path)
    return styles


def _valid_folders(raw: Dict, path: Path) -> Dict[str, str]:
    folders = {}
    for folder, style in raw.items():
        if isinstance(style, str):
            folders[folder] = style
        else:
            logger.warning("Ignoring folder '%s' in %s: style name must be a string", folder, path)
    return folders


class StyleConfigStore:
    """Reads, writes and merges the global and project style files.

    Each mutation is a single read-modify-write of one scope file.
    Mutations are not queued, so two concurrent changes to the same
    scope can race and the last write wins.
    """

    def __init__(
        self,
        project_root: Optional[Union[str, Path]] = None,
        global_path: Optional[Union[str, Path]] = None,
    ):
        """Initialize the store.

        Args:
            project_root: Root of the current project (defaults to the working directory)
            global_path: Global style file (defaults to ``~/.mcp/lottie-styles.json``)
        """
        self._project_root = Path(project_root) if project_root is not None else Path(os.getcwd())
        self.global_path = Path(global_path) if global_path is not None else GLOBAL_CONFIG_PATH

    @property
    def project_root(self) -> Path:
        return self._project_root

    def set_project_root(self, path: Union[str, Path]) -> None:
        """Point the project scope at a different root directory."""
        self._project_root = Path(path)
        logger.debug("Project root set to %s", self._project_root)

    @property
    def project_path(self) -> Path:
        return self._project_root / PROJECT_CONFIG_FILENAME

    def path_for(self, scope: Union[StyleScope, str]) -> Path:
        """File backing the given scope."""
        if _coerce_scope(scope) is StyleScope.GLOBAL:
            return self.global_path
        return self.project_path

    def read_scope(self, scope: Union[StyleScope, str]) -> StyleConfig:
        """Read one scope's config; a missing or invalid file reads as empty."""
        path = self.path_for(scope)
        try:
            with open(path, "r", encoding="utf-8") as f:
                parsed = json.load(f)
        except FileNotFoundError:
            return StyleConfig()
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable style config %s: %s", path, e)
            return StyleConfig()

        if not isinstance(parsed, dict):
            logger.warning("Ignoring style config %s: not a JSON object", path)
            return StyleConfig()
        styles = parsed.get("styles")
        folders = parsed.get("folders")
        return StyleConfig(
            styles=_valid_styles(styles, path) if isinstance(styles, dict) else {},
            folders=_valid_folders(folders, path) if isinstance(folders, dict) else {},
        )

    def write_scope(self, scope: Union[StyleScope, str], config: StyleConfig) -> None:
        """Overwrite one scope's config file, creating its directory if needed.

        Raises:
            OSError: If the file cannot be written
        """
        path = self.path_for(scope)
        write_text_atomic(path, json.dumps(config.to_dict(), indent=2, ensure_ascii=False))
        logger.debug("Style config written to %s", path)

    def merge(self) -> MergedStyleConfig:
        """Merge both scopes, with project entries overriding global ones."""
        global_config = self.read_scope(StyleScope.GLOBAL)
        project_config = self.read_scope(StyleScope.PROJECT)

        style_sources = {name: StyleScope.GLOBAL.value for name in global_config.styles}
        style_sources.update({name: StyleScope.PROJECT.value for name in project_config.styles})
        folder_sources = {path: StyleScope.GLOBAL.value for path in global_config.folders}
        folder_sources.update({path: StyleScope.PROJECT.value for path in project_config.folders})

        return MergedStyleConfig(
            styles={**global_config.styles, **project_config.styles},
            folders={**global_config.folders, **project_config.folders},
            sources=StyleSources(styles=style_sources, folders=folder_sources),
        )

    def save_style(
        self,
        name: str,
        tags: List[str],
        scope: Union[StyleScope, str] = StyleScope.PROJECT,
    ) -> None:
        """Create or replace a named style in one scope.

        Tags are stored in the given order; duplicates are not removed.

        Raises:
            ValueError: If name or tags are empty, or scope is invalid
        """
        if not name:
            raise ValueError("style name cannot be empty")
        if not tags:
            raise ValueError("tags must contain at least one tag")
        scope = _coerce_scope(scope)

        config = self.read_scope(scope)
        config.styles[name] = list(tags)
        self.write_scope(scope, config)
        logger.info("Style saved: name=%s tags=%s scope=%s", name, list(tags), scope.value)

    def delete_style(self, name: str, scope: Union[StyleScope, str] = StyleScope.PROJECT) -> bool:
        """Delete a style and every folder association to it in the same scope.

        Associations in the other scope are left alone.

        Returns:
            True if the style existed in that scope
        """
        scope = _coerce_scope(scope)
        config = self.read_scope(scope)
        if name not in config.styles:
            return False

        del config.styles[name]
        config.folders = {
            folder: style_name
            for folder, style_name in config.folders.items()
            if style_name != name
        }
        self.write_scope(scope, config)
        logger.info("Style deleted: name=%s scope=%s", name, scope.value)
        return True

    def set_folder_style(
        self,
        folder: str,
        style_name: str,
        scope: Union[StyleScope, str] = StyleScope.PROJECT,
    ) -> str:
        """Associate a folder with a style name.

        The style is not checked for existence here; callers validate first.

        Returns:
            The normalized folder path used as the key
        """
        scope = _coerce_scope(scope)
        normalized = normalize_folder_path(folder)

        config = self.read_scope(scope)
        config.folders[normalized] = style_name
        self.write_scope(scope, config)
        logger.info("Folder style set: folder=%s style=%s scope=%s", normalized, style_name, scope.value)
        return normalized

    def remove_folder_style(self, folder: str, scope: Union[StyleScope, str] = StyleScope.PROJECT) -> bool:
        """Remove a folder association.

        Returns:
            True if the folder had an association in that scope
        """
        scope = _coerce_scope(scope)
        normalized = normalize_folder_path(folder)

        config = self.read_scope(scope)
        if normalized not in config.folders:
            return False

        del config.folders[normalized]
        self.write_scope(scope, config)
        logger.info("Folder style removed: folder=%s scope=%s", normalized, scope.value)
        return True

    def get_style_tags(self, style_name: str) -> Optional[List[str]]:
        """Tags of a style from the merged config, or None if it does not exist."""
        return self.merge().styles.get(style_name)

    def resolve_folder(self, folder: str) -> Optional[FolderStyleMatch]:
        """Find the style that applies to a folder.

        Checks the folder itself, then walks its ancestors from the
        deepest parent up to the root. The nearest association whose
        style still exists wins; an association to a deleted style is
        skipped as if it were absent.

        Returns:
            The match, or None if neither the folder nor any ancestor has a usable style
        """
        merged = self.merge()
        normalized = normalize_folder_path(folder)

        for candidate in _self_and_ancestors(normalized):
            style_name = merged.folders.get(candidate)
            if style_name is None:
                continue
            tags = merged.styles.get(style_name)
            if tags is not None:
                return FolderStyleMatch(style=style_name, tags=list(tags), matched_path=candidate)
            logger.debug("Folder %s points at missing style %r", candidate, style_name)
        return None


def _self_and_ancestors(normalized: str):
    """Yield a normalized path, then each ancestor, deepest first.

    ``/a/b/c`` yields ``/a/b/c``, ``/a/b``, ``/a`` and finally ``""``,
    the normalized form of the root ``/``.
    """
    yield normalized
    parts = normalized.split("/")
    for i in range(len(parts) - 1, 0, -1):
        yield "/".join(parts[:i])
