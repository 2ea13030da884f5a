from __future__ import annotations

import contextlib
import logging

from licitacoes.errors import AppError, TransactionFailure
from licitacoes.observability import observe_transaction_rollback


LOGGER = logging.getLogger(__name__)


@contextlib.contextmanager
def atomic(db, operation: str, **context):
    """Run the block in one transaction.

    AppError subclasses propagate unchanged after the rollback; anything else
    is reported as a TransactionFailure.
    """
    try:
        with db.transaction():
            yield db
    except AppError:
        observe_transaction_rollback()
        raise
    except Exception as exc:
        observe_transaction_rollback()
        LOGGER.error(
            "transaction_rolled_back",
            extra={"operation": operation, "details": str(exc), **context},
            exc_info=True,
        )
        raise TransactionFailure(details=str(exc), payload={"operation": operation}) from exc
