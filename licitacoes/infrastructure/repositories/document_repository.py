from __future__ import annotations

import uuid
from typing import Any, Dict, List

from licitacoes.domain.contracts import DocumentInput
from licitacoes.infrastructure.repositories.base import BaseRepository


class DocumentRepository(BaseRepository):
    table = "documents"

    @staticmethod
    def columns_from_input(document: DocumentInput) -> Dict[str, Any]:
        return {
            "name": document.name,
            "type": document.type,
            "storage_path": document.storage_path,
            "url": document.url,
            "format": document.format,
            "size": document.size or 0,
            "status": document.status,
            "valid_until": document.valid_until,
            "description": document.description,
            "document_number": document.document_number,
            "created_by": document.created_by,
        }

    def insert(self, db, tender_id: str | None, document: DocumentInput, *, now: str) -> str:
        document_id = str(uuid.uuid4())
        values = {"id": document_id, **self.columns_from_input(document)}
        values.update({"tender_id": tender_id, "created_at": now, "updated_at": now})
        self.insert_row(db, values)
        return document_id

    def update_columns(self, db, tender_id: str, document_id: str, columns: Dict[str, Any], *, now: str) -> int:
        return self.update_row(db, document_id, {**columns, "updated_at": now}, scope={"tender_id": tender_id})

    def delete(self, db, tender_id: str, document_id: str) -> int:
        cursor = db.execute(
            "DELETE FROM documents WHERE id = ? AND tender_id = ?",
            (document_id, tender_id),
        )
        return int(cursor.rowcount or 0)

    def delete_for_tender(self, db, tender_id: str) -> int:
        cursor = db.execute("DELETE FROM documents WHERE tender_id = ?", (tender_id,))
        return int(cursor.rowcount or 0)

    def storage_paths_for_tender(self, db, tender_id: str) -> List[str]:
        rows = db.execute(
            """
            SELECT storage_path
            FROM documents
            WHERE tender_id = ? AND storage_path IS NOT NULL AND storage_path <> ''
            ORDER BY id
            """,
            (tender_id,),
        ).fetchall()
        return [str(row["storage_path"]) for row in rows]

    def _select_with_tags(self, db) -> str:
        return f"""
            SELECT d.*, agg.tag_names
            FROM documents d
            LEFT JOIN (
                SELECT dt.document_id, {self.tag_aggregate_sql(db)} AS tag_names
                FROM document_tags dt
                JOIN tags t ON t.id = dt.tag_id
                GROUP BY dt.document_id
            ) agg ON agg.document_id = d.id
        """

    def get_row(self, db, tender_id: str, document_id: str) -> dict | None:
        row = db.execute(
            self._select_with_tags(db) + " WHERE d.id = ? AND d.tender_id = ?",
            (document_id, tender_id),
        ).fetchone()
        return dict(row) if row else None

    def list_rows_for_tender(self, db, tender_id: str, *, exclude_status: str | None = None) -> List[dict]:
        sql = self._select_with_tags(db) + " WHERE d.tender_id = ?"
        params: List[Any] = [tender_id]
        if exclude_status:
            sql += " AND d.status <> ?"
            params.append(exclude_status)
        sql += " ORDER BY d.created_at, d.id"
        return self.rows_to_dicts(db.execute(sql, tuple(params)).fetchall())
