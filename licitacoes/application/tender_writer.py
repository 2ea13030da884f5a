from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Mapping

from licitacoes.application.tender_reader import TenderReader
from licitacoes.application.transactions import atomic
from licitacoes.domain.contracts import ServiceOutput, TenderWrite
from licitacoes.errors import NotFoundError, ValidationError
from licitacoes.infrastructure.mappers.formatting import clean_text, utc_now_iso
from licitacoes.infrastructure.mappers.tender_mapper import (
    missing_required_fields,
    row_to_tender,
    tender_to_payload,
    tender_write_from_payload,
)
from licitacoes.infrastructure.repositories.document_repository import DocumentRepository
from licitacoes.infrastructure.repositories.tag_repository import TagRepository
from licitacoes.infrastructure.repositories.tender_repository import TenderRepository
from licitacoes.infrastructure.storage import BlobStorage, NullBlobStorage, delete_blobs_best_effort
from licitacoes.ui_strings import success_message


LOGGER = logging.getLogger(__name__)

DEFAULT_TENDER_STATUS = "analise_interna"
READ_BACK_WARNING = "Licitacao criada, mas nao foi possivel recarrega-la."


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


def _require_tender_fields(payload: Mapping[str, Any]) -> None:
    missing = missing_required_fields(payload)
    if missing:
        raise ValidationError(
            code="required_fields_missing",
            message_key="required_fields_missing",
            details="Campos obrigatorios: " + ", ".join(missing),
            payload={"missing_fields": missing},
        )


class TenderWriter:
    """Transactional writes over a tender and its child collections.

    Every multi-statement mutation runs in one transaction; children are
    replaced wholesale (delete then re-insert), never merged.
    """

    def __init__(
        self,
        reader: TenderReader | None = None,
        tender_repository: TenderRepository | None = None,
        document_repository: DocumentRepository | None = None,
        tag_repository: TagRepository | None = None,
        blob_storage: BlobStorage | None = None,
        now_fn: Callable[[], str] | None = None,
        id_factory: Callable[[], str] | None = None,
        default_status: str = DEFAULT_TENDER_STATUS,
    ) -> None:
        self.tenders = tender_repository or TenderRepository()
        self.documents = document_repository or DocumentRepository()
        self.tags = tag_repository or TagRepository()
        self.reader = reader or TenderReader(self.tenders, self.documents)
        self.storage = blob_storage or NullBlobStorage()
        self._now = now_fn or utc_now_iso
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self.default_status = default_status

    def create(self, db, payload: Any) -> ServiceOutput:
        payload = _require_mapping(payload)
        _require_tender_fields(payload)
        write = tender_write_from_payload(payload)
        columns = dict(write.columns)
        columns.setdefault("status", self.default_status)

        tender_id = self._new_id()
        now = self._now()
        with atomic(db, "tender_create", tender_id=tender_id):
            self.tenders.insert(db, tender_id, columns, now=now)
            self._insert_children(db, tender_id, write, now=now)

        LOGGER.info(
            "tender_created",
            extra={
                "tender_id": tender_id,
                "assigned_users": len(write.assigned_users or ()),
                "documents": len(write.documents or ()),
            },
        )

        try:
            tender = self.reader.get_by_id(db, tender_id)
        except Exception as exc:
            LOGGER.warning("tender_read_back_failed", extra={"tender_id": tender_id, "details": str(exc)})
            tender = None
        if tender is None:
            # Committed already; answer with what was written.
            fallback = row_to_tender({"id": tender_id, **columns, "created_at": now, "updated_at": now})
            body = tender_to_payload(fallback)
            body["warning"] = READ_BACK_WARNING
            return ServiceOutput(body, 201)
        return ServiceOutput(tender_to_payload(tender), 201)

    def replace_all(self, db, tender_id: str, payload: Any) -> ServiceOutput:
        payload = _require_mapping(payload)
        _require_tender_fields(payload)
        write = tender_write_from_payload(payload)

        now = self._now()
        with atomic(db, "tender_replace", tender_id=tender_id):
            updated = self.tenders.update_columns(db, tender_id, write.columns, now=now)
            if not updated:
                raise _tender_not_found(tender_id)
            self._delete_children(db, tender_id, users=True, documents=True)
            self._insert_children(db, tender_id, write, now=now)

        LOGGER.info("tender_replaced", extra={"tender_id": tender_id})
        return ServiceOutput(self._read_payload(db, tender_id))

    def patch_fields(self, db, tender_id: str, payload: Any) -> ServiceOutput:
        payload = _require_mapping(payload)
        write = tender_write_from_payload(payload, partial=True)
        if not write.columns and write.assigned_users is None and write.documents is None:
            raise ValidationError(code="no_changes", message_key="no_changes")

        now = self._now()
        with atomic(db, "tender_patch", tender_id=tender_id):
            updated = self.tenders.update_columns(db, tender_id, write.columns, now=now)
            if not updated:
                raise _tender_not_found(tender_id)
            self._delete_children(
                db,
                tender_id,
                users=write.assigned_users is not None,
                documents=write.documents is not None,
            )
            self._insert_children(db, tender_id, write, now=now)

        return ServiceOutput(self._read_payload(db, tender_id))

    def patch_status(self, db, tender_id: str, status: Any) -> ServiceOutput:
        cleaned = clean_text(status)
        if not cleaned:
            raise ValidationError(code="status_required", message_key="status_required")
        now = self._now()
        updated = self.tenders.update_columns(db, tender_id, {"status": cleaned}, now=now)
        if not updated:
            raise _tender_not_found(tender_id)
        LOGGER.info("tender_status_changed", extra={"tender_id": tender_id, "status": cleaned})
        return ServiceOutput({"id": tender_id, "status": cleaned, "dataAtualizacao": now})

    def delete(self, db, tender_id: str) -> ServiceOutput:
        with atomic(db, "tender_delete", tender_id=tender_id):
            storage_paths = self.documents.storage_paths_for_tender(db, tender_id)
            self.tags.detach_tender_documents(db, tender_id)
            self.documents.delete_for_tender(db, tender_id)
            self.tenders.delete_assigned_users(db, tender_id)
            if not self.tenders.delete(db, tender_id):
                raise _tender_not_found(tender_id)

        outcomes = delete_blobs_best_effort(self.storage, storage_paths)
        LOGGER.info("tender_deleted", extra={"tender_id": tender_id, "blobs": len(outcomes)})
        return ServiceOutput(
            {
                "id": tender_id,
                "message": success_message("tender_deleted"),
                "arquivos": outcomes,
            }
        )

    def _read_payload(self, db, tender_id: str) -> dict:
        tender = self.reader.get_by_id(db, tender_id)
        if tender is None:
            raise _tender_not_found(tender_id)
        return tender_to_payload(tender)

    def _delete_children(self, db, tender_id: str, *, users: bool, documents: bool) -> None:
        if users:
            self.tenders.delete_assigned_users(db, tender_id)
        if documents:
            self.tags.detach_tender_documents(db, tender_id)
            self.documents.delete_for_tender(db, tender_id)

    def _insert_children(self, db, tender_id: str, write: TenderWrite, *, now: str) -> None:
        if write.assigned_users:
            self.tenders.insert_assigned_users(db, tender_id, write.assigned_users, now=now)
        for document in write.documents or ():
            document_id = self.documents.insert(db, tender_id, document, now=now)
            self.tags.attach(db, document_id, document.tags, now=now)
