# plunet_soap/path_helpers.py
"""
Project path management with type safety and validation.

Provides centralized path management with:
- Type-safe category constants and literals
- Frozen dataclass with __slots__
- PROJECT_ROOT environment override
- Packaged defaults for logging, redaction and schema files
- No fuzzy matching - fail fast on errors
"""

import os
from pathlib import Path
from functools import lru_cache
from dataclasses import dataclass
from typing import Optional, Set, Union, Literal

# Type-safe category literal for IDE support
CategoryType = Literal['config', 'logs', 'schemas']

# Shipped inside the package; a file of the same name in the project wins
PACKAGE_DEFAULTS = Path(__file__).resolve().parent / 'defaults'

# Set by set_project_root(); takes precedence over PROJECT_ROOT
_root_override: Optional[Path] = None


class Dir:
    """
    Directory category constants to prevent typos.

    Use these constants instead of strings for type safety:
        Dir.CONFIG instead of 'config'
        Dir.LOGS instead of 'logs'
    """
    CONFIG: CategoryType = 'config'
    LOGS: CategoryType = 'logs'
    SCHEMAS: CategoryType = 'schemas'

    @classmethod
    def all(cls) -> Set[CategoryType]:
        """Get all valid categories."""
        return {cls.CONFIG, cls.LOGS, cls.SCHEMAS}

    @classmethod
    def validate(cls, category: str) -> bool:
        """Check if a category is valid."""
        return category in cls.all()


def _derived_root() -> Path:
    """Source checkout root when it has a config/ directory, else the working directory."""
    checkout = Path(__file__).resolve().parent.parent
    if (checkout / 'config').is_dir():
        return checkout
    return Path.cwd()


@dataclass(frozen=True)
class ProjectPaths:
    """
    Container for all project paths. Frozen to prevent accidental modification.

    The root path can be set in three ways (in order of precedence):
    1. Explicitly passed to init() or set with set_project_root()
    2. Through the PROJECT_ROOT environment variable
    3. The source checkout containing this file, or the working directory
       when the package is installed
    """
    __slots__ = ['root', 'config', 'logs', 'schemas']

    root: Path
    config: Path
    logs: Path
    schemas: Path

    @classmethod
    @lru_cache(maxsize=1)
    def init(cls, root_path: Optional[Path] = None) -> 'ProjectPaths':
        """
        Get singleton instance with cached paths.

        Raises:
            ValueError: If the root_path (explicit or derived) is not a valid directory
        """
        if root_path is None:
            env_root = os.getenv("PROJECT_ROOT")
            if _root_override is not None:
                root_path = _root_override
            elif env_root:
                root_path = Path(env_root)
            else:
                root_path = _derived_root()

        if not root_path.is_dir():
            raise ValueError(f"Invalid root path: {root_path} is not a directory")

        return cls(
            root=root_path,
            config=root_path / "config",
            logs=root_path / "logs",
            schemas=root_path / "schemas",
        )


def get_path(category: CategoryType, filename: str, ensure_parent: bool = True) -> Path:
    """
    Get the full path for a file in a specified category directory.

    Args:
        category: Directory category - must be exact match from Dir constants
        filename: Target filename (e.g., "acme-prod-config.json")
        ensure_parent: If True, create the parent directory if it doesn't exist

    Returns:
        The full path to the file

    Raises:
        ValueError: If the category is not a valid CategoryType
        OSError: If directory creation fails when ensure_parent is True

    Example:
        > from plunet_soap.path_helpers import get_path, Dir
        > config_path = get_path(Dir.CONFIG, 'acme-prod-config.json')
    """
    paths = ProjectPaths.init()

    # Hard fail on invalid category - no fuzzy matching
    if not Dir.validate(category):
        raise ValueError(
            f"Invalid category '{category}'. "
            f"Must be exactly one of: {', '.join(sorted(Dir.all()))}"
        )

    path = getattr(paths, category) / filename

    if ensure_parent:
        try:
            path.parent.mkdir(exist_ok=True, parents=True)
        except OSError as e:
            raise OSError(f"Cannot create parent directory for {path}: {e}")

    return path


def get_config_file(category: CategoryType, filename: str) -> Path:
    """
    Resolve a read-only settings file.

    The project's own file is used when it exists, then the packaged
    default of the same name. When neither exists the project path is
    returned so error messages point where the file is expected.
    """
    path = get_path(category, filename, ensure_parent=False)
    if path.exists():
        return path
    default = PACKAGE_DEFAULTS / filename
    return default if default.exists() else path


def set_project_root(path: Union[str, Path]) -> None:
    """
    Set the project root path for the application.

    Args:
        path: The path to set as the project root

    Raises:
        ValueError: If the path doesn't exist or isn't a directory
    """
    root_path = Path(path) if isinstance(path, str) else path

    if not root_path.exists():
        raise ValueError(f"Project root does not exist: {root_path}")

    if not root_path.is_dir():
        raise ValueError(f"Project root must be a directory, not a file: {root_path}")

    global _root_override
    _root_override = root_path

    # Clear the lru_cache to force reinitialization with the new path
    ProjectPaths.init.cache_clear()


def reset_project_root() -> None:
    """Drop any root set by set_project_root() and fall back to the defaults."""
    global _root_override
    _root_override = None
    ProjectPaths.init.cache_clear()
