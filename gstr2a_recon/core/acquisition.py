import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from gstr2a_recon.schemas.authority import B2BPayload, CDNPayload
from gstr2a_recon.schemas.ledger import PurchaseLedgerRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcquiredSources:
    b2b: Optional[B2BPayload]
    cdn: Optional[CDNPayload]
    ledger: List[PurchaseLedgerRecord]


AuthorityLoader = Callable[[], Awaitable[tuple]]
LedgerLoader = Callable[[], Awaitable[List[PurchaseLedgerRecord]]]


async def acquire_sources(
    authority_loader: AuthorityLoader,
    ledger_loader: LedgerLoader,
) -> AcquiredSources:
    """
    Run both fetches concurrently. Matching only starts once both have
    completed; the first failure propagates and the other fetch is cancelled.
    """
    authority_task = asyncio.ensure_future(authority_loader())
    ledger_task = asyncio.ensure_future(ledger_loader())
    try:
        (b2b, cdn), ledger = await asyncio.gather(authority_task, ledger_task)
    except Exception:
        for task in (authority_task, ledger_task):
            if not task.done():
                task.cancel()
        logger.error("Source acquisition failed; reconciliation aborted")
        raise
    return AcquiredSources(b2b=b2b, cdn=cdn, ledger=ledger)
