# wms/services/sync_ledger.py
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Union

from wms.core.enums import LedgerStatus, SyncDirection, SyncType
from wms.models import SyncLedgerEntry
from wms.stores.base import LedgerStore

logger = logging.getLogger(__name__)


def _value(member: Union[Enum, str]) -> str:
    return member.value if isinstance(member, Enum) else str(member)


def _jsonable(payload: Any) -> Any:
    if payload is None:
        return None
    return json.loads(json.dumps(payload, default=str))


class SyncLedger:
    """
    Append-only audit of every synchronization attempt against Sellus.

    Each workflow invocation writes exactly one entry. Writing is best-effort:
    a failed write is logged and swallowed so the workflow still returns its
    result.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def record(
        self,
        sync_type: Union[SyncType, str],
        direction: Union[SyncDirection, str],
        status: Union[LedgerStatus, str],
        related_article_ref: Optional[str] = None,
        related_product_id: Optional[int] = None,
        request_payload: Any = None,
        response_payload: Any = None,
        error_message: Optional[str] = None,
        duration_ms: int = 0,
    ) -> Optional[SyncLedgerEntry]:
        """
        Record one sync attempt.

        Returns:
            The stored entry, or None when the write failed
        """
        try:
            entry = await self.store.append(
                sync_type=_value(sync_type),
                direction=_value(direction),
                status=_value(status),
                related_article_ref=related_article_ref,
                related_product_id=related_product_id,
                request_payload=_jsonable(request_payload),
                response_payload=_jsonable(response_payload),
                error_message=error_message,
                duration_ms=int(duration_ms or 0),
                created_at=datetime.now(timezone.utc),
            )
            logger.debug(
                f"Ledger: {_value(sync_type)} {_value(status)} "
                f"(ref: {related_article_ref or 'N/A'}, product: {related_product_id or 'N/A'})"
            )
            return entry
        except Exception as e:
            logger.error(f"Error writing sync ledger entry: {str(e)}")
            # Don't raise, the ledger must not interrupt the workflow
            return None

    async def recent(
        self,
        limit: int = 100,
        sync_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[SyncLedgerEntry]:
        return await self.store.recent(limit=limit, sync_type=sync_type, status=status)
