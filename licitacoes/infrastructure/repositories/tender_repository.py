from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Tuple

from licitacoes.domain.contracts import AssignedUserInput
from licitacoes.infrastructure.repositories.base import BaseRepository


_LIST_COLUMNS = """
    l.id, l.title, l.status, l.modality, l.opening_date, l.estimated_value,
    l.object, l.description, l.notice_number, l.deadline_text,
    l.organization_id, l.responsible_id, l.kanban_position,
    l.created_at, l.updated_at,
    o.name AS organization_name, u.name AS responsible_name
"""


class TenderRepository(BaseRepository):
    table = "tenders"

    def insert(self, db, tender_id: str, columns: Dict[str, Any], *, now: str) -> None:
        values = {"id": tender_id, **columns, "created_at": now, "updated_at": now}
        self.insert_row(db, values)

    def update_columns(self, db, tender_id: str, columns: Dict[str, Any], *, now: str) -> int:
        return self.update_row(db, tender_id, {**columns, "updated_at": now})

    def delete(self, db, tender_id: str) -> int:
        cursor = db.execute("DELETE FROM tenders WHERE id = ?", (tender_id,))
        return int(cursor.rowcount or 0)

    def get_row(self, db, tender_id: str) -> dict | None:
        row = db.execute(
            """
            SELECT l.*, o.name AS organization_name, u.name AS responsible_name
            FROM tenders l
            LEFT JOIN organizations o ON o.id = l.organization_id
            LEFT JOIN users u ON u.id = l.responsible_id
            WHERE l.id = ?
            """,
            (tender_id,),
        ).fetchone()
        return dict(row) if row else None

    def list_rows(self, db, conditions: Sequence[Tuple[str, Any]]) -> List[dict]:
        """Lightweight projection; ``conditions`` are ``(sql, value)`` pairs joined with AND."""
        sql = f"""
            SELECT {_LIST_COLUMNS}
            FROM tenders l
            LEFT JOIN organizations o ON o.id = l.organization_id
            LEFT JOIN users u ON u.id = l.responsible_id
        """
        params: List[Any] = []
        clauses: List[str] = []
        for clause, value in conditions:
            clauses.append(clause)
            if isinstance(value, (list, tuple)):
                params.extend(value)
            else:
                params.append(value)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY l.updated_at DESC, l.id"
        return self.rows_to_dicts(db.execute(sql, tuple(params)).fetchall())

    # Assigned users

    def insert_assigned_users(
        self,
        db,
        tender_id: str,
        users: Iterable[AssignedUserInput],
        *,
        now: str,
    ) -> int:
        inserted = 0
        for user in users:
            db.execute(
                """
                INSERT INTO tender_assigned_users (tender_id, user_id, role, assigned_at)
                VALUES (?, ?, ?, ?)
                """,
                (tender_id, user.user_id, user.role, now),
            )
            inserted += 1
        return inserted

    def delete_assigned_users(self, db, tender_id: str) -> None:
        db.execute("DELETE FROM tender_assigned_users WHERE tender_id = ?", (tender_id,))

    def list_assigned_users(self, db, tender_id: str) -> List[dict]:
        rows = db.execute(
            """
            SELECT au.user_id, u.name AS user_name, au.role
            FROM tender_assigned_users au
            LEFT JOIN users u ON u.id = au.user_id
            WHERE au.tender_id = ?
            ORDER BY au.assigned_at, au.user_id
            """,
            (tender_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    # Statistics

    def count_since(self, db, since: str, *, statuses: Sequence[str] | None = None) -> int:
        sql = "SELECT COUNT(*) AS total FROM tenders WHERE created_at >= ?"
        params: List[Any] = [since]
        if statuses:
            sql += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(statuses)
        row = db.execute(sql, tuple(params)).fetchone()
        return int(row["total"] if row else 0)

    def sum_estimated_value_since(self, db, since: str, *, excluded_statuses: Sequence[str]) -> Any:
        sql = "SELECT SUM(estimated_value) AS total FROM tenders WHERE created_at >= ?"
        params: List[Any] = [since]
        if excluded_statuses:
            sql += f" AND status NOT IN ({', '.join('?' for _ in excluded_statuses)})"
            params.extend(excluded_statuses)
        row = db.execute(sql, tuple(params)).fetchone()
        return row["total"] if row else None

    def count_opening_between(self, db, since: str, start_date: str, end_date: str) -> int:
        row = db.execute(
            """
            SELECT COUNT(*) AS total
            FROM tenders
            WHERE opening_date BETWEEN ? AND ? AND created_at >= ?
            """,
            (start_date, end_date, since),
        ).fetchone()
        return int(row["total"] if row else 0)

    def count_grouped_since(self, db, since: str, column: str) -> Dict[str, int]:
        if column not in {"status", "modality"}:
            raise ValueError(f"coluna de agrupamento invalida: {column}")
        rows = db.execute(
            f"""
            SELECT {column} AS grouping_key, COUNT(*) AS total
            FROM tenders
            WHERE created_at >= ?
            GROUP BY {column}
            ORDER BY {column}
            """,
            (since,),
        ).fetchall()
        return {str(row["grouping_key"] or ""): int(row["total"]) for row in rows}
