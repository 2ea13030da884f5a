from __future__ import annotations

from typing import Any, Dict, Iterable


class BaseRepository:
    table: str = ""
    key_column: str = "id"

    def insert_row(self, db, values: Dict[str, Any]) -> None:
        columns = list(values.keys())
        placeholders = ", ".join("?" for _ in columns)
        db.execute(
            f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(values[column] for column in columns),
        )

    def update_row(self, db, row_id: str, fields: Dict[str, Any], *, scope: Dict[str, Any] | None = None) -> int:
        """UPDATE by key (plus optional scope columns); returns the affected row count."""
        if not fields:
            return 0
        updates = [f"{key} = ?" for key in fields.keys()]
        params = list(fields.values())
        conditions = [f"{self.key_column} = ?"]
        params.append(row_id)
        for column, value in (scope or {}).items():
            conditions.append(f"{column} = ?")
            params.append(value)
        cursor = db.execute(
            f"""
            UPDATE {self.table}
            SET {", ".join(updates)}
            WHERE {" AND ".join(conditions)}
            """,
            tuple(params),
        )
        return int(cursor.rowcount or 0)

    def exists(self, db, row_id: str) -> bool:
        row = db.execute(
            f"SELECT 1 FROM {self.table} WHERE {self.key_column} = ? LIMIT 1",
            (row_id,),
        ).fetchone()
        return row is not None

    @staticmethod
    def tag_aggregate_sql(db, column: str = "t.name") -> str:
        if db.backend == "postgres":
            return f"STRING_AGG({column}, ',' ORDER BY {column})"
        return f"GROUP_CONCAT({column}, ',')"

    @staticmethod
    def rows_to_dicts(rows: Iterable[Any]) -> list[dict]:
        return [dict(row) for row in rows]
