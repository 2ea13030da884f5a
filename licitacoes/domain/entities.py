from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List


@dataclass(frozen=True)
class AssignedUser:
    id: str
    name: str | None = None
    role: str = "Participante"


@dataclass(frozen=True)
class Tag:
    id: str
    name: str


@dataclass(frozen=True)
class Document:
    id: str
    name: str
    type: str
    tender_id: str | None = None
    url: str | None = None
    storage_path: str | None = None
    format: str | None = None
    size: int = 0
    status: str = "ativo"
    description: str | None = None
    document_number: str | None = None
    valid_until: date | None = None
    created_by: str | None = None
    tags: List[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Tender:
    id: str
    title: str
    status: str
    modality: str | None = None
    process_number: str | None = None
    object: str | None = None
    notice: str | None = None
    notice_number: str | None = None
    opening_date: date | None = None
    proposal_deadline: date | None = None
    judgment_date: date | None = None
    organization_id: str | None = None
    organization_name: str | None = None
    estimated_value: Decimal | None = None
    responsible_id: str | None = None
    responsible_name: str | None = None
    deadline_text: str | None = None
    tender_url: str | None = None
    notice_url: str | None = None
    description: str | None = None
    payment_terms: str | None = None
    financial_notes: str | None = None
    kind: str | None = None
    billing_type: str | None = None
    profit_margin: Decimal | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    kanban_position: int = 0
    created_at: str = ""
    updated_at: str = ""
    assigned_users: List[AssignedUser] = field(default_factory=list)
    documents: List[Document] = field(default_factory=list)


@dataclass(frozen=True)
class TenderStatistics:
    total: int
    ativas: int
    vencidas: int
    valor_total: Decimal
    taxa_sucesso: float
    pregoes_proximos: int
    por_modalidade: Dict[str, int] = field(default_factory=dict)
    por_status: Dict[str, int] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "total": self.total,
            "ativas": self.ativas,
            "vencidas": self.vencidas,
            "valorTotal": float(self.valor_total),
            "taxaSucesso": self.taxa_sucesso,
            "pregoesProximos": self.pregoes_proximos,
            "porModalidade": dict(self.por_modalidade),
            "porStatus": dict(self.por_status),
        }
