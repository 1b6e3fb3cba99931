"""Input parsing utilities for CLI commands."""

from pathlib import Path


def read_json_text(data_json: str | None, from_file: str | None) -> str:
    """Return the request body from an inline argument or a file.

    The text is returned unparsed; the writer decodes and validates it.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If neither or both sources are given
    """
    if data_json is not None and from_file is not None:
        raise ValueError("Provide data as a JSON string or with --from-file, not both")
    if from_file is not None:
        file_path = Path(from_file)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {from_file}")
        return file_path.read_text()
    if data_json is None:
        raise ValueError("Either provide data as JSON string or use --from-file")
    return data_json
