"""Input validation utilities for sbomgraph."""
import json
import re
from pathlib import Path

COORDINATE_PATTERN = re.compile(r'^[A-Za-z0-9._-]+$')
REPOSITORY_IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


class ValidationError(ValueError):
    """Validation error."""


def is_valid_coordinate(value: str | None) -> bool:
    """Check a group, name or version component is safe to put into a URL path."""
    return bool(value) and COORDINATE_PATTERN.match(value) is not None


def is_valid_repository_identifier(value: str | None) -> bool:
    """Check a hosting-provider owner or repository name."""
    return bool(value) and REPOSITORY_IDENTIFIER_PATTERN.match(value) is not None


def parse_library_id(value: str) -> tuple[str, str, str]:
    """
    Split a ``group:name:version`` identifier.

    Raises:
        ValidationError if the identifier does not have three non-empty parts
    """
    parts = value.split(':')
    if len(parts) != 3 or not all(parts):
        raise ValidationError(f"Invalid library id (expected group:name:version): {value!r}")
    return parts[0], parts[1], parts[2]


def load_json_file(file_path: Path) -> dict:
    """
    Load a JSON document that must be an object.

    Raises:
        ValidationError if the file is missing, empty or not a JSON object
    """
    if not file_path.exists():
        raise ValidationError(f"File does not exist: {file_path}")

    if not file_path.is_file():
        raise ValidationError(f"Not a file: {file_path}")

    if file_path.stat().st_size == 0:
        raise ValidationError(f"File is empty: {file_path}")

    try:
        with open(file_path, encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {file_path}: {e}")

    if not isinstance(data, dict):
        raise ValidationError(f"Expected a JSON object in {file_path}")

    return data
