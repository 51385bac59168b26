"""File handler module: path validation, document read/write, MIME guessing.

Provides the file I/O used by the MCP tools that import from and export to
disk.  Documents are read as raw bytes: decoding and content sniffing are
the validator's job.  Async wrappers compose validation + I/O via
run_sync().
"""

from pathlib import Path

from .core.async_utils import run_sync

# =============================================================================
# Path Validation
# =============================================================================


def validate_file_path(path_str: str) -> Path:
    """Validate and resolve an input file path.

    Args:
        path_str: Absolute path string to an existing file.

    Returns:
        Resolved Path object pointing to the real file.

    Raises:
        ValueError: If path is relative, doesn't exist, or is not a file.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.exists():
        raise ValueError(f"File not found: {path_str}")
    if not resolved.is_file():
        raise ValueError(f"Path is not a file: {path_str}")
    return resolved


def validate_output_path(
    path_str: str, base_dir: str | None = None
) -> Path:
    """Validate an output file path (file need not exist, but parent must).

    Args:
        path_str: Absolute path string for the output file.
        base_dir: Optional base directory; output must be under it.

    Raises:
        ValueError: If path is relative, parent doesn't exist, or path is
            outside base_dir.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.parent.exists():
        raise ValueError(
            f"Output parent directory not found: {resolved.parent}"
        )
    if base_dir is not None:
        base_resolved = Path(base_dir).resolve()
        if not resolved.is_relative_to(base_resolved):
            raise ValueError(
                f"Output path is outside base directory: {resolved} not under {base_resolved}"
            )
    return resolved


# =============================================================================
# File Read/Write
# =============================================================================


def read_document(path: Path, max_bytes: int | None = None) -> bytes:
    """Read a document's raw bytes.

    Args:
        path: File to read.
        max_bytes: Refuse files larger than this before reading them.

    Raises:
        ValueError: If the file exceeds *max_bytes*.
    """
    if max_bytes is not None:
        size = path.stat().st_size
        if size > max_bytes:
            raise ValueError(
                f"File is {size} bytes, larger than the {max_bytes} byte limit"
            )
    return path.read_bytes()


def write_document(path: Path, payload: bytes) -> int:
    """Write *payload* to *path*, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return len(payload)


# =============================================================================
# MIME Detection
# =============================================================================


_EXTENSION_MIME_MAP: dict[str, str] = {
    ".json": "application/json",
    ".wie": "application/json",
    ".txt": "text/plain",
}


def detect_mime_type(path: Path) -> str:
    """Guess a document's MIME type from its extension.

    ``.wie`` is the legacy export extension; its content is JSON.
    Unknown extensions map to ``application/octet-stream``, which the
    default allow-list rejects.
    """
    return _EXTENSION_MIME_MAP.get(
        path.suffix.lower(), "application/octet-stream"
    )


# =============================================================================
# Async Wrappers
# =============================================================================


async def read_document_async(
    path_str: str, max_bytes: int | None = None
) -> tuple[bytes, str, Path]:
    """Async wrapper: validate path, read bytes, guess MIME type.

    Returns:
        Tuple of (raw_bytes, mime_type, resolved_path).

    Raises:
        ValueError: If path validation fails or the file is too large.
    """
    resolved = await run_sync(validate_file_path, path_str)
    raw = await run_sync(read_document, resolved, max_bytes)
    return (raw, detect_mime_type(resolved), resolved)


async def write_document_async(
    path_str: str, payload: bytes
) -> tuple[Path, int]:
    """Async wrapper: validate output path, write bytes.

    Returns:
        Tuple of (resolved_path, bytes_written).

    Raises:
        ValueError: If output path validation fails.
    """
    resolved = await run_sync(validate_output_path, path_str)
    count = await run_sync(write_document, resolved, payload)
    return (resolved, count)
