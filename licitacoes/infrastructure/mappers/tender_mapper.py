from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Tuple

from licitacoes.domain.contracts import AssignedUserInput, TenderWrite
from licitacoes.domain.entities import AssignedUser, Document, Tender
from licitacoes.errors import ValidationError
from licitacoes.infrastructure.mappers.document_mapper import document_inputs_from_payload, document_to_payload
from licitacoes.infrastructure.mappers.formatting import (
    clean_text,
    coerce_decimal,
    date_to_storage,
    decimal_to_number,
    format_date_br,
    format_money_br,
    parse_date,
    parse_int,
    parse_money,
    to_iso_timestamp,
)


DEFAULT_ASSIGNED_ROLE = "Participante"

# (wire key, column, kind)
TENDER_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("titulo", "title", "text"),
    ("status", "status", "text"),
    ("modalidade", "modality", "text"),
    ("numeroProcesso", "process_number", "text"),
    ("objeto", "object", "text"),
    ("edital", "notice", "text"),
    ("numeroEdital", "notice_number", "text"),
    ("dataAbertura", "opening_date", "date"),
    ("dataLimiteProposta", "proposal_deadline", "date"),
    ("dataJulgamento", "judgment_date", "date"),
    ("orgaoId", "organization_id", "text"),
    ("valorEstimado", "estimated_value", "money"),
    ("responsavelId", "responsible_id", "text"),
    ("prazo", "deadline_text", "text"),
    ("urlLicitacao", "tender_url", "text"),
    ("urlEdital", "notice_url", "text"),
    ("descricao", "description", "text"),
    ("formaPagamento", "payment_terms", "text"),
    ("obsFinanceiras", "financial_notes", "text"),
    ("tipo", "kind", "text"),
    ("tipoFaturamento", "billing_type", "text"),
    ("margemLucro", "profit_margin", "money"),
    ("contatoNome", "contact_name", "text"),
    ("contatoEmail", "contact_email", "text"),
    ("contatoTelefone", "contact_phone", "text"),
    ("posicaoKanban", "kanban_position", "int"),
)

TENDER_COLUMNS: Tuple[str, ...] = tuple(column for _, column, _ in TENDER_FIELDS)
REQUIRED_TENDER_FIELDS: Tuple[str, ...] = ("titulo", "orgaoId", "modalidade")


def _convert(kind: str, wire_key: str, value: Any) -> Any:
    if kind == "date":
        return date_to_storage(value)
    if kind == "money":
        try:
            return parse_money(value)
        except ValueError as exc:
            raise ValidationError(
                code="value_invalid",
                message_key="value_invalid",
                details=f"{wire_key}: {exc}",
                payload={"field": wire_key},
            ) from exc
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


def _with_numeric_fallback(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    if "valorEstimado" in payload or "_valorEstimadoNumerico" not in payload:
        return payload
    merged = dict(payload)
    merged["valorEstimado"] = payload.get("_valorEstimadoNumerico")
    return merged


def tender_input_to_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Every tender column; omitted optional properties become None.

    ``status`` is left out when not supplied so callers can apply their default.
    """
    source = _with_numeric_fallback(payload)
    row: Dict[str, Any] = {}
    for wire_key, column, kind in TENDER_FIELDS:
        value = _convert(kind, wire_key, source.get(wire_key))
        if column == "status" and value is None:
            continue
        row[column] = value
    return row


def tender_patch_to_row(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Only the keys present in the payload; explicit null clears the column."""
    source = _with_numeric_fallback(payload)
    row: Dict[str, Any] = {}
    for wire_key, column, kind in TENDER_FIELDS:
        if wire_key not in source:
            continue
        value = _convert(kind, wire_key, source.get(wire_key))
        if column in {"title", "status"} and value is None:
            raise ValidationError(
                code="value_invalid",
                message_key="value_invalid",
                details=f"{wire_key} nao pode ser vazio",
                payload={"field": wire_key},
            )
        row[column] = value
    return row


def missing_required_fields(payload: Mapping[str, Any], required: Iterable[str] = REQUIRED_TENDER_FIELDS) -> List[str]:
    return [key for key in required if clean_text(payload.get(key)) is None]


def assigned_users_from_payload(raw: Any) -> Tuple[AssignedUserInput, ...]:
    """Accept user ids or ``{"id", "papel"}`` objects; entries without id are skipped."""
    if not isinstance(raw, (list, tuple)):
        return ()
    seen = set()
    users: List[AssignedUserInput] = []
    for entry in raw:
        if isinstance(entry, Mapping):
            user_id = clean_text(entry.get("id") or entry.get("userId"))
            role = clean_text(entry.get("papel")) or DEFAULT_ASSIGNED_ROLE
        else:
            user_id = clean_text(entry)
            role = DEFAULT_ASSIGNED_ROLE
        if not user_id or user_id in seen:
            continue
        seen.add(user_id)
        users.append(AssignedUserInput(user_id=user_id, role=role))
    return tuple(users)


def tender_write_from_payload(payload: Mapping[str, Any], *, partial: bool = False) -> TenderWrite:
    if partial:
        return TenderWrite(
            columns=tender_patch_to_row(payload),
            assigned_users=(
                assigned_users_from_payload(payload.get("responsaveis")) if "responsaveis" in payload else None
            ),
            documents=(
                document_inputs_from_payload(payload.get("documentos")) if "documentos" in payload else None
            ),
        )
    return TenderWrite(
        columns=tender_input_to_row(payload),
        assigned_users=assigned_users_from_payload(payload.get("responsaveis")),
        documents=document_inputs_from_payload(payload.get("documentos")),
    )


def row_to_assigned_user(row: Mapping[str, Any] | None) -> AssignedUser | None:
    if row is None:
        return None
    data = dict(row)
    return AssignedUser(
        id=str(data.get("user_id") or data.get("id")),
        name=data.get("user_name") or data.get("name"),
        role=data.get("role") or DEFAULT_ASSIGNED_ROLE,
    )


def row_to_tender(
    row: Mapping[str, Any] | None,
    assigned_users: Iterable[AssignedUser] = (),
    documents: Iterable[Document] = (),
) -> Tender | None:
    if row is None:
        return None
    data = dict(row)
    kanban_position = data.get("kanban_position")
    return Tender(
        id=str(data.get("id")),
        title=data.get("title") or "",
        status=data.get("status") or "",
        modality=data.get("modality"),
        process_number=data.get("process_number"),
        object=data.get("object"),
        notice=data.get("notice"),
        notice_number=data.get("notice_number"),
        opening_date=parse_date(data.get("opening_date")),
        proposal_deadline=parse_date(data.get("proposal_deadline")),
        judgment_date=parse_date(data.get("judgment_date")),
        organization_id=data.get("organization_id"),
        organization_name=data.get("organization_name"),
        estimated_value=coerce_decimal(data.get("estimated_value")),
        responsible_id=data.get("responsible_id"),
        responsible_name=data.get("responsible_name"),
        deadline_text=data.get("deadline_text"),
        tender_url=data.get("tender_url"),
        notice_url=data.get("notice_url"),
        description=data.get("description"),
        payment_terms=data.get("payment_terms"),
        financial_notes=data.get("financial_notes"),
        kind=data.get("kind"),
        billing_type=data.get("billing_type"),
        profit_margin=coerce_decimal(data.get("profit_margin")),
        contact_name=data.get("contact_name"),
        contact_email=data.get("contact_email"),
        contact_phone=data.get("contact_phone"),
        kanban_position=int(kanban_position) if kanban_position is not None else 0,
        created_at=to_iso_timestamp(data.get("created_at")),
        updated_at=to_iso_timestamp(data.get("updated_at")),
        assigned_users=list(assigned_users),
        documents=list(documents),
    )


def tender_to_payload(tender: Tender) -> Dict[str, Any]:
    return {
        "id": tender.id,
        "titulo": tender.title,
        "status": tender.status,
        "modalidade": tender.modality,
        "numeroProcesso": tender.process_number,
        "objeto": tender.object,
        "edital": tender.notice,
        "numeroEdital": tender.notice_number,
        "dataAbertura": format_date_br(tender.opening_date),
        "dataLimiteProposta": format_date_br(tender.proposal_deadline),
        "dataJulgamento": format_date_br(tender.judgment_date),
        "orgao": tender.organization_name or "",
        "orgaoId": tender.organization_id,
        "valorEstimado": format_money_br(tender.estimated_value),
        "_valorEstimadoNumerico": decimal_to_number(tender.estimated_value),
        "responsavel": tender.responsible_name or "",
        "responsavelId": tender.responsible_id,
        "responsaveis": [
            {"id": user.id, "nome": user.name or "", "papel": user.role or DEFAULT_ASSIGNED_ROLE}
            for user in tender.assigned_users
        ],
        "prazo": tender.deadline_text,
        "urlLicitacao": tender.tender_url,
        "urlEdital": tender.notice_url,
        "descricao": tender.description,
        "formaPagamento": tender.payment_terms,
        "obsFinanceiras": tender.financial_notes,
        "tipo": tender.kind,
        "tipoFaturamento": tender.billing_type,
        "margemLucro": decimal_to_number(tender.profit_margin),
        "contatoNome": tender.contact_name,
        "contatoEmail": tender.contact_email,
        "contatoTelefone": tender.contact_phone,
        "posicaoKanban": tender.kanban_position,
        "dataCriacao": tender.created_at,
        "dataAtualizacao": tender.updated_at,
        "documentos": [document_to_payload(document) for document in tender.documents],
    }
