from __future__ import annotations

from .document_mapper import document_to_payload, row_to_document
from .tender_mapper import row_to_assigned_user, row_to_tender, tender_to_payload

__all__ = [
    "document_to_payload",
    "row_to_assigned_user",
    "row_to_document",
    "row_to_tender",
    "tender_to_payload",
]
