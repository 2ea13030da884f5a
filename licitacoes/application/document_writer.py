from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from licitacoes.application.tender_reader import TenderReader
from licitacoes.application.transactions import atomic
from licitacoes.domain.contracts import DocumentDeleteResult, ServiceOutput
from licitacoes.errors import NotFoundError, ValidationError
from licitacoes.infrastructure.mappers.document_mapper import (
    document_input_from_payload,
    document_patch_to_row,
    document_to_payload,
    tags_from_payload,
)
from licitacoes.infrastructure.mappers.formatting import utc_now_iso
from licitacoes.infrastructure.repositories.document_repository import DocumentRepository
from licitacoes.infrastructure.repositories.tag_repository import TagRepository
from licitacoes.infrastructure.repositories.tender_repository import TenderRepository
from licitacoes.infrastructure.storage import BlobStorage, NullBlobStorage, delete_blobs_best_effort
from licitacoes.ui_strings import DOCUMENT_DELETED_STATUS, success_message


LOGGER = logging.getLogger(__name__)


def _document_not_found(tender_id: str, document_id: str) -> NotFoundError:
    return NotFoundError(
        code="document_not_found",
        message_key="document_not_found",
        payload={"tender_id": tender_id, "document_id": document_id},
    )


def _tender_not_found(tender_id: str) -> NotFoundError:
    return NotFoundError(
        code="tender_not_found",
        message_key="tender_not_found",
        payload={"tender_id": tender_id},
    )


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError(code="payload_invalid", message_key="payload_invalid")
    return payload


class DocumentWriter:
    """Document sub-resource of a tender.

    Each change also bumps the owning tender's ``updated_at``.
    """

    def __init__(
        self,
        reader: TenderReader | None = None,
        tender_repository: TenderRepository | None = None,
        document_repository: DocumentRepository | None = None,
        tag_repository: TagRepository | None = None,
        blob_storage: BlobStorage | None = None,
        now_fn: Callable[[], str] | None = None,
    ) -> None:
        self.tenders = tender_repository or TenderRepository()
        self.documents = document_repository or DocumentRepository()
        self.tags = tag_repository or TagRepository()
        self.reader = reader or TenderReader(self.tenders, self.documents)
        self.storage = blob_storage or NullBlobStorage()
        self._now = now_fn or utc_now_iso

    def add(self, db, tender_id: str, payload: Any) -> ServiceOutput:
        document = document_input_from_payload(_require_mapping(payload))
        now = self._now()
        with atomic(db, "document_add", tender_id=tender_id):
            if not self.tenders.update_columns(db, tender_id, {}, now=now):
                raise _tender_not_found(tender_id)
            document_id = self.documents.insert(db, tender_id, document, now=now)
            self.tags.attach(db, document_id, document.tags, now=now)
        LOGGER.info("document_added", extra={"tender_id": tender_id, "document_id": document_id})
        return ServiceOutput(self._read_payload(db, tender_id, document_id), 201)

    def replace(self, db, tender_id: str, document_id: str, payload: Any) -> ServiceOutput:
        document = document_input_from_payload(_require_mapping(payload))
        now = self._now()
        with atomic(db, "document_replace", tender_id=tender_id, document_id=document_id):
            columns = self.documents.columns_from_input(document)
            if not self.documents.update_columns(db, tender_id, document_id, columns, now=now):
                raise _document_not_found(tender_id, document_id)
            self.tags.replace_for_document(db, document_id, document.tags, now=now)
            self.tenders.update_columns(db, tender_id, {}, now=now)
        return ServiceOutput(self._read_payload(db, tender_id, document_id))

    def patch(self, db, tender_id: str, document_id: str, payload: Any) -> ServiceOutput:
        payload = _require_mapping(payload)
        columns = document_patch_to_row(payload)
        replace_tags = "tags" in payload
        if not columns and not replace_tags:
            raise ValidationError(code="no_changes", message_key="no_changes")

        now = self._now()
        with atomic(db, "document_patch", tender_id=tender_id, document_id=document_id):
            if not self.documents.update_columns(db, tender_id, document_id, columns, now=now):
                raise _document_not_found(tender_id, document_id)
            if replace_tags:
                self.tags.replace_for_document(db, document_id, tags_from_payload(payload.get("tags")), now=now)
            self.tenders.update_columns(db, tender_id, {}, now=now)
        return ServiceOutput(self._read_payload(db, tender_id, document_id))

    def delete(self, db, tender_id: str, document_id: str, *, physical: bool = False) -> ServiceOutput:
        now = self._now()
        if not physical:
            with atomic(db, "document_soft_delete", tender_id=tender_id, document_id=document_id):
                columns = {"status": DOCUMENT_DELETED_STATUS}
                if not self.documents.update_columns(db, tender_id, document_id, columns, now=now):
                    raise _document_not_found(tender_id, document_id)
                self.tenders.update_columns(db, tender_id, {}, now=now)
            result = DocumentDeleteResult(document_id=document_id, physical=False)
            return ServiceOutput(self._delete_payload(result, "document_archived"))

        with atomic(db, "document_delete", tender_id=tender_id, document_id=document_id):
            row = self.documents.get_row(db, tender_id, document_id)
            if row is None:
                raise _document_not_found(tender_id, document_id)
            self.tags.detach_document(db, document_id)
            self.documents.delete(db, tender_id, document_id)
            self.tenders.update_columns(db, tender_id, {}, now=now)

        storage_outcome = None
        warnings = []
        if row.get("storage_path"):
            outcomes = delete_blobs_best_effort(self.storage, [row["storage_path"]])
            storage_outcome = outcomes.get(row["storage_path"])
            if storage_outcome not in {"ok", "not_found"}:
                warnings.append("storage_delete_failed")
        result = DocumentDeleteResult(
            document_id=document_id,
            physical=True,
            storage_outcome=storage_outcome,
            warnings=warnings,
        )
        return ServiceOutput(self._delete_payload(result, "document_deleted"))

    def delete_all(self, db, tender_id: str) -> ServiceOutput:
        now = self._now()
        with atomic(db, "document_delete_all", tender_id=tender_id):
            if not self.tenders.update_columns(db, tender_id, {}, now=now):
                raise _tender_not_found(tender_id)
            storage_paths = self.documents.storage_paths_for_tender(db, tender_id)
            self.tags.detach_tender_documents(db, tender_id)
            removed = self.documents.delete_for_tender(db, tender_id)

        outcomes = delete_blobs_best_effort(self.storage, storage_paths)
        return ServiceOutput(
            {
                "licitacaoId": tender_id,
                "removidos": removed,
                "arquivos": outcomes,
                "message": success_message("documents_deleted"),
            }
        )

    def _read_payload(self, db, tender_id: str, document_id: str) -> dict:
        document = self.reader.get_document(db, tender_id, document_id)
        if document is None:
            raise _document_not_found(tender_id, document_id)
        return document_to_payload(document)

    @staticmethod
    def _delete_payload(result: DocumentDeleteResult, message_key: str) -> dict:
        body = {
            "id": result.document_id,
            "fisicamente": result.physical,
            "message": success_message(message_key),
        }
        if result.storage_outcome is not None:
            body["arquivo"] = result.storage_outcome
        if result.warnings:
            body["warnings"] = list(result.warnings)
        return body
