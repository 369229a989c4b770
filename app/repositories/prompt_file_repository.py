"""
Repository for the local prompts file.

The whole active collection lives in one JSON document,
``{"prompts": [...]}``, rewritten in full on every save. Reads and writes
hold a lock file next to the data file so two processes pointed at the
same file do not interleave.
"""
import logging
from pathlib import Path
from typing import List

from filelock import FileLock, Timeout

from app.core.logging import log_operation_error
from app.models.domain import Prompt
from app.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10


class PromptFileRepository(BaseRepository):
    """Reads and writes the prompt collection file."""

    def __init__(self, data_file: Path):
        """
        Initialize prompt file repository.

        Args:
            data_file: Path of the JSON file holding all prompts
        """
        data_file = Path(data_file)
        super().__init__(data_file.parent)
        self.filename = data_file.name
        self.lock = FileLock(str(data_file.with_suffix(".lock")), timeout=LOCK_TIMEOUT_SECONDS)

    @property
    def path(self) -> Path:
        return self.get_file_path(self.filename)

    def ensure_file(self) -> bool:
        """
        Create the file with an empty collection if it does not exist.

        Returns:
            True if the file exists afterwards, False if it could not be
            created or locked
        """
        try:
            with self.lock:
                if self.file_exists(self.filename):
                    return True
                logger.info(f"Initializing prompts file at {self.path}")
                return self.write_json(self.filename, {"prompts": []})
        except (OSError, Timeout) as e:
            log_operation_error(
                logger=__name__,
                function="ensure_file",
                operation="prompts_file_init",
                error=e,
                message=f"Could not initialize prompts file {self.path}",
            )
            return False

    def load(self) -> List[Prompt]:
        """
        Load all prompts from the file.

        A missing or malformed file is reset to an empty collection.
        Individual records that cannot be parsed are skipped. A file that
        cannot be locked or read yields an empty collection.

        Returns:
            Prompts in file order
        """
        try:
            with self.lock:
                data = self.read_json(self.filename)

                if not isinstance(data, dict) or not isinstance(data.get("prompts"), list):
                    if data is not None or self.file_exists(self.filename):
                        logger.warning(f"Prompts file {self.path} is malformed, resetting it")
                    self.write_json(self.filename, {"prompts": []})
                    return []
        except (OSError, Timeout) as e:
            log_operation_error(
                logger=__name__,
                function="load",
                operation="prompts_file_load",
                error=e,
                message=f"Could not read prompts file {self.path}, starting empty",
            )
            return []

        prompts = []
        for index, record in enumerate(data["prompts"]):
            try:
                prompts.append(Prompt.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable prompt record #{index} in {self.path}: {e}")
        return prompts

    def save(self, prompts: List[Prompt]) -> bool:
        """
        Write the full collection.

        Returns:
            True if successful, False otherwise
        """
        data = {"prompts": [prompt.to_dict() for prompt in prompts]}
        try:
            with self.lock:
                return self.write_json(self.filename, data)
        except Timeout:
            logger.error(f"Timed out waiting for lock on {self.path}")
            return False
        except OSError as e:
            logger.error(f"Error locking prompts file {self.path}: {str(e)}")
            return False
