"""Version checking utilities for detecting a stale installed package."""

import tomllib
from pathlib import Path

from . import __version__


def check_version_consistency(
    pyproject_path: Path | None = None,
) -> tuple[bool, str]:
    """Check if the runtime version matches the version in pyproject.toml.

    An editable install picks up source edits immediately, but a regular
    install keeps the version it was built with; a mismatch means the
    installed package needs reinstalling.

    Args:
        pyproject_path: File to compare against.  Defaults to the
            pyproject.toml at the repository root.

    Returns:
        Tuple of (is_consistent, message).
    """
    if pyproject_path is None:
        pyproject_path = (
            Path(__file__).parent.parent.parent / "pyproject.toml"
        )

    if not pyproject_path.exists():
        return (
            False,
            "Cannot find pyproject.toml for version comparison",
        )

    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        return False, f"Failed to read version from pyproject.toml: {e}"

    source_version = data.get("project", {}).get("version", "unknown")

    if __version__ != source_version:
        return False, (
            f"Version mismatch detected! "
            f"Runtime: {__version__}, Source: {source_version}. "
            f"Reinstall with: pip install -e ."
        )

    return True, f"Version verified: {__version__}"
