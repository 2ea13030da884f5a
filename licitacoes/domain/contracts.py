from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Tuple
from urllib.parse import urlencode


@dataclass(frozen=True)
class ServiceOutput:
    payload: Any
    status_code: int = 200


@dataclass(frozen=True)
class AssignedUserInput:
    user_id: str
    role: str = "Participante"


@dataclass(frozen=True)
class DocumentInput:
    name: str
    type: str
    url: str | None = None
    storage_path: str | None = None
    format: str | None = None
    size: int = 0
    status: str = "ativo"
    description: str | None = None
    document_number: str | None = None
    valid_until: str | None = None
    created_by: str | None = None
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TenderWrite:
    """Column values plus child collections.

    ``None`` for a child collection means the caller did not send it.
    """

    columns: Dict[str, Any]
    assigned_users: Tuple[AssignedUserInput, ...] | None = None
    documents: Tuple[DocumentInput, ...] | None = None


_FILTER_WIRE_KEYS: Dict[str, str] = {
    "termo": "termo",
    "status": "status",
    "orgao_id": "orgaoId",
    "responsavel_id": "responsavelId",
    "modalidade": "modalidade",
    "data_inicio": "dataInicio",
    "data_fim": "dataFim",
    "valor_min": "valorMin",
    "valor_max": "valorMax",
}


@dataclass(frozen=True)
class TenderFilters:
    termo: str | None = None
    status: str | None = None
    orgao_id: str | None = None
    responsavel_id: str | None = None
    modalidade: str | None = None
    data_inicio: str | None = None
    data_fim: str | None = None
    valor_min: str | None = None
    valor_max: str | None = None

    @classmethod
    def from_mapping(cls, args: Mapping[str, Any] | None) -> "TenderFilters":
        source = args or {}
        values: Dict[str, str | None] = {}
        for attr, wire_key in _FILTER_WIRE_KEYS.items():
            raw = source.get(wire_key)
            if raw is None:
                raw = source.get(attr)
            text = str(raw).strip() if raw is not None else ""
            values[attr] = text or None
        return cls(**values)

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value:
                params[_FILTER_WIRE_KEYS[item.name]] = value
        return params

    def is_empty(self) -> bool:
        return not self.to_query_params()

    def cache_key(self) -> str:
        params = self.to_query_params()
        if not params:
            return "all"
        return urlencode(sorted(params.items()))


@dataclass(frozen=True)
class DocumentDeleteResult:
    document_id: str
    physical: bool
    storage_outcome: str | None = None
    warnings: List[str] = field(default_factory=list)
