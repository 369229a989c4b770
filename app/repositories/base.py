"""
Base repository class with common JSON file operations.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Any
import logging

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base class for file-based repositories rooted at one directory."""

    def __init__(self, base_path: Path):
        """
        Initialize repository.

        Args:
            base_path: Base directory for this repository's files
        """
        self.base_path = Path(base_path)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating directory {self.base_path}: {str(e)}")

    def get_file_path(self, filename: str) -> Path:
        """Get the full path for a file in this repository."""
        return self.base_path / filename

    def file_exists(self, filename: str) -> bool:
        """Check if a file exists in this repository."""
        file_path = self.get_file_path(filename)
        return file_path.exists() and file_path.is_file()

    def read_json(self, filename: str) -> Optional[Any]:
        """
        Read JSON data from a file.

        Args:
            filename: Name of the file to read

        Returns:
            Parsed JSON data or None if file doesn't exist or parsing fails
        """
        if not filename:
            return None

        file_path = self.get_file_path(filename)

        if not file_path.exists():
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing JSON file {file_path}: {str(e)}")
            return None
        except OSError as e:
            logger.error(f"Error reading file {file_path}: {str(e)}")
            return None

    def write_json(self, filename: str, data: Any) -> bool:
        """
        Write JSON data to a file, replacing it in one step.

        The data goes to a temporary file in the same directory which is then
        renamed over the target, so readers never see a half-written file.

        Args:
            filename: Name of the file to write
            data: Data to serialize to JSON

        Returns:
            True if successful, False otherwise
        """
        file_path = self.get_file_path(filename)
        tmp_name = None

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=file_path.parent,
                prefix=f".{file_path.name}.",
                suffix=".tmp",
                delete=False
            ) as f:
                tmp_name = f.name
                json.dump(data, f, indent=2, ensure_ascii=False)

            os.replace(tmp_name, file_path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing file {file_path}: {str(e)}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
