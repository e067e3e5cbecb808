"""
Local filesystem store for encrypted medical record files.

Every stored object is two files under the upload directory:

* ``<root>/<key>``: the ciphertext
* ``<root>/<key>.metadata``: JSON ``{"iv": "<hex>"}``

Keys are chosen by the caller and never reused, so no locking is done here.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata"


@dataclass(frozen=True)
class StoredObject:
    """Ciphertext and the IV it was encrypted under."""
    data: bytes
    iv: bytes


class BlobStore:
    """Best-effort paired file persistence scoped to one root directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _paths(self, key: str):
        data_path = self.root / key
        return data_path, self.root / f"{key}{METADATA_SUFFIX}"

    def put(self, key: str, data: bytes, iv: bytes) -> None:
        """
        Write the ciphertext and its metadata file.

        Raises:
            StorageError: If either file cannot be written
        """
        data_path, metadata_path = self._paths(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            data_path.write_bytes(data)
            metadata_path.write_text(json.dumps({"iv": iv.hex()}), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to store file {key}: {str(e)}")
            raise StorageError("Failed to store file") from e
        logger.debug(f"Stored file {key} ({len(data)} bytes)")

    def get(self, key: str) -> StoredObject:
        """
        Read the ciphertext and IV for *key*.

        Raises:
            NotFoundError: If either file is missing, unreadable or the metadata is malformed
        """
        data_path, metadata_path = self._paths(key)
        try:
            data = data_path.read_bytes()
            metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
            iv = bytes.fromhex(metadata["iv"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Stored file {key} is missing or unreadable: {str(e)}")
            raise NotFoundError("File not found or corrupted") from e
        return StoredObject(data=data, iv=iv)

    def exists(self, key: str) -> bool:
        data_path, metadata_path = self._paths(key)
        return data_path.is_file() and metadata_path.is_file()

    def delete(self, key: str) -> None:
        """
        Remove both files for *key*. Never raises.

        Files that are already gone are skipped; any other failure is logged
        and left for manual cleanup.
        """
        for path in self._paths(key):
            try:
                path.unlink()
            except FileNotFoundError:
                logger.debug(f"Nothing to delete at {path.name}")
            except OSError as e:
                logger.error(f"Failed to delete stored file {path.name}: {str(e)}")
