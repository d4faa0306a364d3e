"""Name and path validation shared by folders and files."""
from drive.config import settings
from drive.services.errors import InvalidNameError, InvalidPathError

SEPARATOR = settings.PATH_SEPARATOR
ROOT_NAME = settings.ROOT_FOLDER_NAME


def validate_name(name: str, kind: str = "folder") -> str:
    """Reject empty names, names holding the separator, and the reserved root name."""
    if name is None or not name.strip():
        raise InvalidNameError(f"{kind.capitalize()} name must not be empty")
    if name == ROOT_NAME:
        raise InvalidNameError(f"'{ROOT_NAME}' is reserved for the root folder")
    if SEPARATOR in name:
        raise InvalidNameError(f"{kind.capitalize()} name must not contain '{SEPARATOR}'")
    return name


def validate_path(path: str) -> str:
    """A path must be absolute and free of '..' and doubled separators."""
    if not path or not path.startswith(SEPARATOR):
        raise InvalidPathError(f"Path must start with '{SEPARATOR}'")
    if ".." in path:
        raise InvalidPathError("Path must not contain '..'")
    if SEPARATOR * 2 in path:
        raise InvalidPathError(f"Path must not contain '{SEPARATOR * 2}'")
    return path


def split_path(path: str) -> list[str]:
    """'/a/b/' -> ['a', 'b']; '/' -> []."""
    validate_path(path)
    return [part for part in path.split(SEPARATOR) if part]


def join_path(names: list[str]) -> str:
    """Materialized path from root-to-leaf names, root excluded."""
    return SEPARATOR + SEPARATOR.join(names)
