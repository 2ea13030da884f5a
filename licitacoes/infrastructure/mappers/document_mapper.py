from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from licitacoes.domain.contracts import DocumentInput
from licitacoes.domain.entities import Document
from licitacoes.errors import ValidationError
from licitacoes.infrastructure.mappers.formatting import (
    clean_text,
    date_to_storage,
    format_date_br,
    parse_date,
    parse_int,
    to_iso_timestamp,
)


DEFAULT_DOCUMENT_TYPE = "Outro"
DEFAULT_DOCUMENT_STATUS = "ativo"
TAG_SEPARATOR = ","

DOCUMENT_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("nome", "name", "text"),
    ("tipo", "type", "text"),
    ("url", "url", "text"),
    ("arquivo", "storage_path", "text"),
    ("formato", "format", "text"),
    ("tamanho", "size", "int"),
    ("status", "status", "text"),
    ("descricao", "description", "text"),
    ("numeroDocumento", "document_number", "text"),
    ("dataValidade", "valid_until", "date"),
    ("criadoPor", "created_by", "text"),
)


def _convert(kind: str, wire_key: str, value: Any) -> Any:
    if kind == "date":
        return date_to_storage(value)
    if kind == "int":
        try:
            return parse_int(value, default=0)
        except ValueError as exc:
            raise ValidationError(
                code="value_invalid",
                message_key="value_invalid",
                details=f"{wire_key}: {exc}",
                payload={"field": wire_key},
            ) from exc
    return clean_text(value)


def tags_from_payload(raw: Any) -> Tuple[str, ...]:
    """Tag names from a list or a comma separated string, trimmed and deduplicated."""
    if raw is None:
        return ()
    entries = raw if isinstance(raw, (list, tuple)) else [raw]
    names: List[str] = []
    for entry in entries:
        if entry is None:
            continue
        for chunk in str(entry).split(TAG_SEPARATOR):
            name = chunk.strip()
            if name and name not in names:
                names.append(name)
    return tuple(names)


def document_input_from_payload(payload: Mapping[str, Any], *, default_type: str | None = None) -> DocumentInput:
    values: Dict[str, Any] = {}
    for wire_key, column, kind in DOCUMENT_FIELDS:
        values[column] = _convert(kind, wire_key, payload.get(wire_key))
    if values["type"] is None:
        values["type"] = default_type
    if values["status"] is None:
        values["status"] = DEFAULT_DOCUMENT_STATUS
    if values["storage_path"] is None:
        values["storage_path"] = clean_text(payload.get("arquivoPath"))

    missing = [key for key, column in (("nome", "name"), ("tipo", "type")) if not values.get(column)]
    if missing:
        raise ValidationError(
            code="document_fields_missing",
            message_key="document_fields_missing",
            details="Campos obrigatorios: " + ", ".join(missing),
            payload={"missing_fields": missing},
        )
    return DocumentInput(tags=tags_from_payload(payload.get("tags")), **values)


def document_inputs_from_payload(raw: Any) -> Tuple[DocumentInput, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    documents: List[DocumentInput] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        documents.append(document_input_from_payload(entry, default_type=DEFAULT_DOCUMENT_TYPE))
    return tuple(documents)


def document_patch_to_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {}
    for wire_key, column, kind in DOCUMENT_FIELDS:
        if wire_key not in payload:
            continue
        value = _convert(kind, wire_key, payload.get(wire_key))
        if column in {"name", "type", "status"} and value is None:
            raise ValidationError(
                code="value_invalid",
                message_key="value_invalid",
                details=f"{wire_key} nao pode ser vazio",
                payload={"field": wire_key},
            )
        row[column] = value
    return row


def row_to_document(row: Mapping[str, Any] | None) -> Document | None:
    if row is None:
        return None
    data = dict(row)
    raw_tags = data.get("tag_names")
    size = data.get("size")
    return Document(
        id=str(data.get("id")),
        name=data.get("name") or "",
        type=data.get("type") or "",
        tender_id=data.get("tender_id"),
        url=data.get("url"),
        storage_path=data.get("storage_path"),
        format=data.get("format"),
        size=int(size) if size is not None else 0,
        status=data.get("status") or DEFAULT_DOCUMENT_STATUS,
        description=data.get("description"),
        document_number=data.get("document_number"),
        valid_until=parse_date(data.get("valid_until")),
        created_by=data.get("created_by"),
        tags=sorted(name for name in str(raw_tags).split(TAG_SEPARATOR) if name) if raw_tags else [],
        created_at=to_iso_timestamp(data.get("created_at")),
        updated_at=to_iso_timestamp(data.get("updated_at")),
    )


def document_to_payload(document: Document) -> Dict[str, Any]:
    return {
        "id": document.id,
        "nome": document.name,
        "tipo": document.type,
        "url": document.url,
        "arquivo": document.storage_path,
        "formato": document.format,
        "tamanho": document.size,
        "status": document.status,
        "descricao": document.description,
        "numeroDocumento": document.document_number,
        "dataValidade": format_date_br(document.valid_until),
        "criadoPor": document.created_by,
        "licitacaoId": document.tender_id,
        "tags": list(document.tags),
        "dataCriacao": document.created_at,
        "dataAtualizacao": document.updated_at,
    }
