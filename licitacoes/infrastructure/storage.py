from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable

from licitacoes.errors import StorageCollaboratorError
from licitacoes.observability import observe_blob_delete


LOGGER = logging.getLogger(__name__)

DELETE_OK = "ok"
DELETE_NOT_FOUND = "not_found"
DELETE_ERROR = "error"


class BlobStorage(ABC):
    """Opaque file store; only best-effort deletion is needed here."""

    @abstractmethod
    def delete(self, path: str) -> str:
        """Return ``ok``, ``not_found`` or ``error``."""


class NullBlobStorage(BlobStorage):
    def delete(self, path: str) -> str:
        return DELETE_NOT_FOUND


class LocalBlobStorage(BlobStorage):
    def __init__(self, root_dir: str) -> None:
        self.root = Path(root_dir).expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / str(path).lstrip("/\\")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise StorageCollaboratorError(details=f"caminho fora do armazenamento: {path}") from exc
        return candidate

    def delete(self, path: str) -> str:
        try:
            target = self._resolve(path)
            os.remove(target)
        except FileNotFoundError:
            return DELETE_NOT_FOUND
        except (OSError, StorageCollaboratorError) as exc:
            LOGGER.warning("blob_delete_failed", extra={"storage_path": path, "details": str(exc)})
            return DELETE_ERROR
        return DELETE_OK


def delete_blobs_best_effort(storage: BlobStorage, paths: Iterable[str]) -> Dict[str, str]:
    """Delete each path; failures are logged and reported, never raised."""
    outcomes: Dict[str, str] = {}
    for path in paths:
        if not path:
            continue
        try:
            outcome = storage.delete(path)
        except Exception as exc:
            mapped = StorageCollaboratorError(details=str(exc))
            LOGGER.warning(
                "blob_delete_failed",
                extra={"storage_path": path, "error_code": mapped.code, "details": mapped.details},
            )
            outcome = DELETE_ERROR
        if outcome not in {DELETE_OK, DELETE_NOT_FOUND}:
            LOGGER.warning("blob_delete_not_confirmed", extra={"storage_path": path, "outcome": outcome})
        observe_blob_delete(outcome)
        outcomes[path] = outcome
    return outcomes
