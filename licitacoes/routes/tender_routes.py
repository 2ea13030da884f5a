from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from licitacoes.db import get_db
from licitacoes.domain.contracts import ServiceOutput, TenderFilters
from licitacoes.errors import NotFoundError
from licitacoes.infrastructure.mappers.document_mapper import document_to_payload
from licitacoes.infrastructure.mappers.tender_mapper import tender_to_payload


tenders_bp = Blueprint("tenders", __name__)


def _services() -> dict:
    return current_app.extensions["licitacoes"]


def _json_body():
    payload = request.get_json(silent=True)
    return {} if payload is None else payload


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"


def _respond(result: ServiceOutput):
    return jsonify(result.payload), result.status_code


@tenders_bp.route("/api/tenders", methods=["GET"])
def list_tenders():
    db = get_db()
    reader = _services()["reader"]
    if _flag("estatisticas"):
        statistics = reader.statistics(db, request.args.get("periodo"))
        return jsonify(statistics.to_payload()), 200

    filters = TenderFilters.from_mapping(request.args)
    tenders = reader.list(db, filters)
    return jsonify([tender_to_payload(tender) for tender in tenders]), 200


@tenders_bp.route("/api/tenders", methods=["POST"])
def create_tender():
    return _respond(_services()["tender_writer"].create(get_db(), _json_body()))


@tenders_bp.route("/api/tenders/<string:tender_id>", methods=["GET"])
def get_tender(tender_id: str):
    tender = _services()["reader"].get_by_id(get_db(), tender_id)
    if tender is None:
        raise NotFoundError(code="tender_not_found", message_key="tender_not_found", payload={"tender_id": tender_id})
    return jsonify(tender_to_payload(tender)), 200


@tenders_bp.route("/api/tenders/<string:tender_id>", methods=["PUT"])
def replace_tender(tender_id: str):
    return _respond(_services()["tender_writer"].replace_all(get_db(), tender_id, _json_body()))


@tenders_bp.route("/api/tenders/<string:tender_id>", methods=["PATCH"])
def patch_tender(tender_id: str):
    return _respond(_services()["tender_writer"].patch_fields(get_db(), tender_id, _json_body()))


@tenders_bp.route("/api/tenders/<string:tender_id>", methods=["DELETE"])
def delete_tender(tender_id: str):
    return _respond(_services()["tender_writer"].delete(get_db(), tender_id))


@tenders_bp.route("/api/tenders/<string:tender_id>/status", methods=["PATCH"])
def patch_tender_status(tender_id: str):
    payload = _json_body()
    status = payload.get("status") if isinstance(payload, dict) else None
    return _respond(_services()["tender_writer"].patch_status(get_db(), tender_id, status))


@tenders_bp.route("/api/tenders/<string:tender_id>/documents", methods=["GET"])
def list_documents(tender_id: str):
    documents = _services()["reader"].list_documents(
        get_db(),
        tender_id,
        include_deleted=_flag("incluirExcluidos"),
    )
    return jsonify([document_to_payload(document) for document in documents]), 200


@tenders_bp.route("/api/tenders/<string:tender_id>/documents", methods=["POST"])
def add_document(tender_id: str):
    return _respond(_services()["document_writer"].add(get_db(), tender_id, _json_body()))


@tenders_bp.route("/api/tenders/<string:tender_id>/documents", methods=["DELETE"])
def delete_documents(tender_id: str):
    return _respond(_services()["document_writer"].delete_all(get_db(), tender_id))


@tenders_bp.route("/api/tenders/<string:tender_id>/documents/<string:document_id>", methods=["GET"])
def get_document(tender_id: str, document_id: str):
    document = _services()["reader"].get_document(get_db(), tender_id, document_id)
    if document is None:
        raise NotFoundError(
            code="document_not_found",
            message_key="document_not_found",
            payload={"tender_id": tender_id, "document_id": document_id},
        )
    return jsonify(document_to_payload(document)), 200


@tenders_bp.route("/api/tenders/<string:tender_id>/documents/<string:document_id>", methods=["PUT"])
def replace_document(tender_id: str, document_id: str):
    return _respond(_services()["document_writer"].replace(get_db(), tender_id, document_id, _json_body()))


@tenders_bp.route("/api/tenders/<string:tender_id>/documents/<string:document_id>", methods=["PATCH"])
def patch_document(tender_id: str, document_id: str):
    return _respond(_services()["document_writer"].patch(get_db(), tender_id, document_id, _json_body()))


@tenders_bp.route("/api/tenders/<string:tender_id>/documents/<string:document_id>", methods=["DELETE"])
def delete_document(tender_id: str, document_id: str):
    writer = _services()["document_writer"]
    return _respond(writer.delete(get_db(), tender_id, document_id, physical=_flag("fisicamente")))
