from __future__ import annotations

from typing import Dict, List


FRIENDLY_TERMS: Dict[str, str] = {
    "app_name": "Plataforma Licitacoes",
    "tender": "Licitacao",
    "document": "Documento",
    "tag": "Tag",
    "organization": "Orgao",
    "responsible": "Responsavel",
}


STATUS_GROUPS: Dict[str, List[Dict[str, str]]] = {
    "licitacao": [
        {
            "key": "novo_lead",
            "label": "Novo lead",
            "description": "Oportunidade identificada, ainda sem analise.",
        },
        {
            "key": "analise_interna",
            "label": "Analise interna",
            "description": "Edital em avaliacao pela equipe.",
        },
        {
            "key": "aguardando_pregao",
            "label": "Aguardando pregao",
            "description": "Participacao decidida, aguardando a sessao publica.",
        },
        {
            "key": "envio_documentos",
            "label": "Envio de documentos",
            "description": "Documentacao de habilitacao em preparacao ou envio.",
        },
        {
            "key": "assinaturas",
            "label": "Assinaturas",
            "description": "Contrato ou ata aguardando assinaturas.",
        },
        {
            "key": "proposta_enviada",
            "label": "Proposta enviada",
            "description": "Proposta registrada junto ao orgao.",
        },
        {
            "key": "negociacao",
            "label": "Negociacao",
            "description": "Negociacao de valores ou condicoes em andamento.",
        },
        {
            "key": "fechado_ganho",
            "label": "Ganha",
            "description": "Licitacao vencida.",
        },
        {
            "key": "fechado_perdido",
            "label": "Perdida",
            "description": "Licitacao encerrada sem vitoria.",
        },
        {
            "key": "arquivada",
            "label": "Arquivada",
            "description": "Licitacao arquivada sem continuidade.",
        },
    ],
    "documento": [
        {
            "key": "ativo",
            "label": "Ativo",
            "description": "Documento vigente e visivel.",
        },
        {
            "key": "excluido",
            "label": "Excluido",
            "description": "Documento removido logicamente.",
        },
    ],
}

# Status never enforced on write; these sets only drive statistics.
ACTIVE_TENDER_STATUSES = (
    "analise_interna",
    "aguardando_pregao",
    "envio_documentos",
    "assinaturas",
    "novo_lead",
    "proposta_enviada",
    "negociacao",
)
WON_TENDER_STATUS = "fechado_ganho"
LOST_TENDER_STATUS = "fechado_perdido"
ARCHIVED_TENDER_STATUS = "arquivada"
DOCUMENT_DELETED_STATUS = "excluido"


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "tender_deleted": "Licitacao excluida com sucesso.",
        "document_deleted": "Documento excluido com sucesso.",
        "document_archived": "Documento marcado como excluido.",
        "documents_deleted": "Documentos da licitacao removidos.",
    },
    "error": {
        "auth_required": "Autenticacao necessaria.",
        "token_expired": "Sessao expirada. Renove o acesso para continuar.",
        "token_invalid": "Token de acesso invalido.",
        "session_expired": "Sua sessao expirou. Faca login novamente.",
        "required_fields_missing": "Campos obrigatorios nao informados.",
        "document_fields_missing": "Documento sem campos obrigatorios.",
        "status_required": "Informe o status da licitacao.",
        "value_invalid": "Valor informado e invalido.",
        "no_changes": "Nenhuma alteracao informada.",
        "payload_invalid": "Corpo da requisicao invalido.",
        "tender_not_found": "Licitacao nao encontrada.",
        "document_not_found": "Documento nao encontrado.",
        "transaction_failed": "Nao foi possivel salvar a licitacao. Nenhuma alteracao foi aplicada.",
        "storage_delete_failed": "Arquivo nao removido do armazenamento.",
        "api_request_failed": "Falha ao comunicar com o servidor de licitacoes.",
        "unexpected_error": "Nao foi possivel concluir a operacao. Tente novamente em instantes.",
    },
}


def status_keys_for_group(group: str) -> List[str]:
    return [item["key"] for item in STATUS_GROUPS.get(group, [])]


def build_status_labels() -> Dict[str, str]:
    labels: Dict[str, str] = {}
    for group_items in STATUS_GROUPS.values():
        for item in group_items:
            labels[item["key"]] = item["label"]
    return labels


STATUS_LABELS = build_status_labels()


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)
