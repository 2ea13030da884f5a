from __future__ import annotations

import uuid
from typing import Iterable, List

from licitacoes.infrastructure.repositories.base import BaseRepository


class TagRepository(BaseRepository):
    """Global tag catalogue and document/tag links.

    Every method runs on the caller's connection, inside the caller's transaction.
    """

    table = "tags"

    def find_by_name(self, db, name: str) -> dict | None:
        row = db.execute(
            "SELECT id, name FROM tags WHERE name = ? LIMIT 1",
            (name,),
        ).fetchone()
        return dict(row) if row else None

    def resolve(self, db, name: str, *, now: str) -> str:
        """Return the id of the tag called ``name``, creating it when missing."""
        existing = self.find_by_name(db, name)
        if existing:
            return str(existing["id"])
        tag_id = str(uuid.uuid4())
        self.insert_row(db, {"id": tag_id, "name": name, "created_at": now, "updated_at": now})
        return tag_id

    def resolve_many(self, db, names: Iterable[str], *, now: str) -> List[str]:
        tag_ids: List[str] = []
        for name in names:
            cleaned = (name or "").strip()
            if not cleaned:
                continue
            tag_id = self.resolve(db, cleaned, now=now)
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)
        return tag_ids

    def attach(self, db, document_id: str, names: Iterable[str], *, now: str) -> None:
        for tag_id in self.resolve_many(db, names, now=now):
            db.execute(
                "INSERT INTO document_tags (document_id, tag_id) VALUES (?, ?)",
                (document_id, tag_id),
            )

    def replace_for_document(self, db, document_id: str, names: Iterable[str], *, now: str) -> None:
        self.detach_document(db, document_id)
        self.attach(db, document_id, names, now=now)

    def detach_document(self, db, document_id: str) -> None:
        db.execute("DELETE FROM document_tags WHERE document_id = ?", (document_id,))

    def detach_tender_documents(self, db, tender_id: str) -> None:
        db.execute(
            """
            DELETE FROM document_tags
            WHERE document_id IN (SELECT id FROM documents WHERE tender_id = ?)
            """,
            (tender_id,),
        )

    def names_for_document(self, db, document_id: str) -> List[str]:
        rows = db.execute(
            """
            SELECT t.name
            FROM document_tags dt
            JOIN tags t ON t.id = dt.tag_id
            WHERE dt.document_id = ?
            ORDER BY t.name
            """,
            (document_id,),
        ).fetchall()
        return [str(row["name"]) for row in rows]

    def count(self, db) -> int:
        row = db.execute("SELECT COUNT(*) AS total FROM tags").fetchone()
        return int(row["total"] if row else 0)
