from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, List, Tuple

from licitacoes.domain.contracts import TenderFilters
from licitacoes.domain.entities import Document, Tender, TenderStatistics
from licitacoes.errors import NotFoundError, ValidationError
from licitacoes.infrastructure.mappers.document_mapper import row_to_document
from licitacoes.infrastructure.mappers.formatting import coerce_decimal, date_to_storage, parse_money
from licitacoes.infrastructure.mappers.tender_mapper import row_to_assigned_user, row_to_tender
from licitacoes.infrastructure.repositories.document_repository import DocumentRepository
from licitacoes.infrastructure.repositories.tender_repository import TenderRepository
from licitacoes.ui_strings import (
    ACTIVE_TENDER_STATUSES,
    ARCHIVED_TENDER_STATUS,
    DOCUMENT_DELETED_STATUS,
    LOST_TENDER_STATUS,
    WON_TENDER_STATUS,
)


DEFAULT_STATISTICS_PERIOD = "mes"
# period -> (days, months)
STATISTICS_PERIODS = {
    "semana": (7, 0),
    "mes": (0, 1),
    "trimestre": (0, 3),
    "ano": (0, 12),
}
UPCOMING_OPENING_DAYS = 7


def escape_like(term: str) -> str:
    """Make ``%`` and ``_`` literal inside a LIKE pattern escaped by backslash."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _subtract_months(value: date, months: int) -> date:
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def normalize_period(period: str | None) -> str:
    key = (period or "").strip().lower()
    return key if key in STATISTICS_PERIODS else DEFAULT_STATISTICS_PERIOD


def period_start(period: str | None, today: date) -> date:
    days, months = STATISTICS_PERIODS[normalize_period(period)]
    start = today - timedelta(days=days)
    if months:
        start = _subtract_months(start, months)
    return start


def success_rate(won: int, lost: int) -> float:
    closed = won + lost
    if closed <= 0:
        return 0.0
    return round(won / closed * 100, 2)


class TenderReader:
    def __init__(
        self,
        tender_repository: TenderRepository | None = None,
        document_repository: DocumentRepository | None = None,
        today_fn: Callable[[], date] | None = None,
    ) -> None:
        self.tenders = tender_repository or TenderRepository()
        self.documents = document_repository or DocumentRepository()
        self._today = today_fn or _utc_today

    def get_by_id(self, db, tender_id: str) -> Tender | None:
        """Full aggregate in three queries: tender, assigned users, documents with tags."""
        row = self.tenders.get_row(db, tender_id)
        if row is None:
            return None
        assigned_users = [row_to_assigned_user(item) for item in self.tenders.list_assigned_users(db, tender_id)]
        documents = [row_to_document(item) for item in self.documents.list_rows_for_tender(db, tender_id)]
        return row_to_tender(row, assigned_users=assigned_users, documents=documents)

    def list(self, db, filters: TenderFilters | None = None) -> List[Tender]:
        conditions = self._filter_conditions(db, filters or TenderFilters())
        return [row_to_tender(row) for row in self.tenders.list_rows(db, conditions)]

    def _filter_conditions(self, db, filters: TenderFilters) -> List[Tuple[str, Any]]:
        conditions: List[Tuple[str, Any]] = []
        if filters.termo:
            like = "ILIKE" if db.backend == "postgres" else "LIKE"
            pattern = f"%{escape_like(filters.termo)}%"
            conditions.append(
                (
                    f"(l.title {like} ? ESCAPE '\\' OR l.object {like} ? ESCAPE '\\' OR l.description {like} ? ESCAPE '\\')",
                    (pattern, pattern, pattern),
                )
            )
        if filters.status:
            conditions.append(("l.status = ?", filters.status))
        if filters.orgao_id:
            conditions.append(("l.organization_id = ?", filters.orgao_id))
        if filters.responsavel_id:
            conditions.append(("l.responsible_id = ?", filters.responsavel_id))
        if filters.modalidade:
            conditions.append(("l.modality = ?", filters.modalidade))

        start_date = date_to_storage(filters.data_inicio)
        if start_date:
            conditions.append(("l.opening_date >= ?", start_date))
        end_date = date_to_storage(filters.data_fim)
        if end_date:
            conditions.append(("l.opening_date <= ?", end_date))

        for wire_key, raw, operator in (
            ("valorMin", filters.valor_min, ">="),
            ("valorMax", filters.valor_max, "<="),
        ):
            try:
                amount = parse_money(raw)
            except ValueError as exc:
                raise ValidationError(
                    code="value_invalid",
                    message_key="value_invalid",
                    details=f"{wire_key}: {exc}",
                    payload={"field": wire_key},
                ) from exc
            if amount is not None:
                conditions.append((f"l.estimated_value {operator} ?", amount))
        return conditions

    def statistics(self, db, period: str | None = None) -> TenderStatistics:
        today = self._today()
        since = period_start(period, today).isoformat()

        won = self.tenders.count_since(db, since, statuses=(WON_TENDER_STATUS,))
        lost = self.tenders.count_since(db, since, statuses=(LOST_TENDER_STATUS,))
        total_value = coerce_decimal(
            self.tenders.sum_estimated_value_since(
                db,
                since,
                excluded_statuses=(ARCHIVED_TENDER_STATUS, LOST_TENDER_STATUS),
            )
        )
        return TenderStatistics(
            total=self.tenders.count_since(db, since),
            ativas=self.tenders.count_since(db, since, statuses=ACTIVE_TENDER_STATUSES),
            vencidas=won,
            valor_total=total_value if total_value is not None else Decimal("0"),
            taxa_sucesso=success_rate(won, lost),
            pregoes_proximos=self.tenders.count_opening_between(
                db,
                since,
                today.isoformat(),
                (today + timedelta(days=UPCOMING_OPENING_DAYS)).isoformat(),
            ),
            por_modalidade=self.tenders.count_grouped_since(db, since, "modality"),
            por_status=self.tenders.count_grouped_since(db, since, "status"),
        )

    def list_documents(self, db, tender_id: str, *, include_deleted: bool = False) -> List[Document]:
        if not self.tenders.exists(db, tender_id):
            raise NotFoundError(
                code="tender_not_found",
                message_key="tender_not_found",
                payload={"tender_id": tender_id},
            )
        rows = self.documents.list_rows_for_tender(
            db,
            tender_id,
            exclude_status=None if include_deleted else DOCUMENT_DELETED_STATUS,
        )
        return [row_to_document(row) for row in rows]

    def get_document(self, db, tender_id: str, document_id: str) -> Document | None:
        return row_to_document(self.documents.get_row(db, tender_id, document_id))
