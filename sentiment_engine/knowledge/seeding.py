"""
Seeding of finance entities from the knowledge base.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..clock import Clock, SystemClock
from ..db.models import FinanceEntity
from ..db.queries import get_all_entities, get_entity_by_symbol
from .knowledge_base import FinanceKnowledgeBase, TickerInfo, get_knowledge_base

logger = logging.getLogger(__name__)


@dataclass
class SeedResult:
    """Outcome of a seeding run. Partial success is a valid outcome."""
    entities_created: int = 0
    entities_updated: int = 0
    entities_deactivated: int = 0
    errors: List[str] = field(default_factory=list)


def entity_id_for(symbol: str) -> str:
    return f"ticker:{symbol.upper()}"


def initialize_finance_entities(
    session: Session,
    kb: Optional[FinanceKnowledgeBase] = None,
    overwrite: bool = False,
    clock: Optional[Clock] = None
) -> SeedResult:
    """
    Create or refresh a FinanceEntity for every ticker in the knowledge base.

    Each ticker is written inside its own savepoint, so one failure is
    recorded in ``errors`` and the remaining tickers are still processed.

    Args:
        session: Database session.
        kb: Knowledge base to seed from. Default: process-wide knowledge base.
        overwrite: Update existing entities (and deactivate entities no longer
            in the knowledge base). If False, existing entities are skipped.
        clock: Time source for created/updated timestamps.

    Returns:
        SeedResult with created/updated counts and per-entity errors.
    """
    kb = kb or get_knowledge_base()
    clock = clock or SystemClock()
    result = SeedResult()

    for ticker in kb.tickers:
        try:
            with session.begin_nested():
                created = _upsert_entity(session, ticker, kb.version, overwrite, clock.now_ms())
        except Exception as e:
            logger.warning(f"Failed to seed entity {ticker.symbol}: {e}")
            result.errors.append(f"{ticker.symbol}: {e}")
            continue

        if created is True:
            result.entities_created += 1
        elif created is False:
            result.entities_updated += 1

    if overwrite:
        result.entities_deactivated = _deactivate_missing(session, kb, clock.now_ms())

    logger.info(
        f"Seeded finance entities: {result.entities_created} created, "
        f"{result.entities_updated} updated, {len(result.errors)} errors"
    )
    return result


def _upsert_entity(
    session: Session,
    ticker: TickerInfo,
    version: str,
    overwrite: bool,
    now: int
) -> Optional[bool]:
    """Returns True if created, False if updated, None if skipped."""
    entity = get_entity_by_symbol(session, ticker.symbol)

    if entity is None:
        session.add(FinanceEntity(
            entity_id=entity_id_for(ticker.symbol),
            entity_type='ticker',
            canonical_symbol=ticker.symbol.upper(),
            name=ticker.name,
            aliases=list(ticker.aliases),
            sector=ticker.sector,
            industry=ticker.industry,
            active=True,
            kb_version=version,
            created_at=now,
            updated_at=now,
        ))
        session.flush()
        return True

    if not overwrite:
        return None

    entity.name = ticker.name
    entity.aliases = list(ticker.aliases)
    entity.sector = ticker.sector
    entity.industry = ticker.industry
    entity.active = True
    entity.kb_version = version
    entity.updated_at = now
    session.flush()
    return False


def _deactivate_missing(session: Session, kb: FinanceKnowledgeBase, now: int) -> int:
    count = 0
    for entity in get_all_entities(session, active_only=True):
        if entity.canonical_symbol not in kb:
            entity.active = False
            entity.updated_at = now
            count += 1
    session.flush()
    return count


def get_finance_entity_stats(session: Session) -> Dict[str, object]:
    """
    Summarize stored finance entities.

    Returns:
        Dictionary with total_entities, active_entities and by_sector /
        by_type lists of {name, count} sorted by count descending.
    """
    entities = get_all_entities(session)

    by_sector: Dict[str, int] = {}
    by_type: Dict[str, int] = {}
    for entity in entities:
        sector = entity.sector or 'Unknown'
        by_sector[sector] = by_sector.get(sector, 0) + 1
        by_type[entity.entity_type] = by_type.get(entity.entity_type, 0) + 1

    def ranked(counts: Dict[str, int]) -> List[Dict[str, object]]:
        return [
            {'name': name, 'count': count}
            for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]

    return {
        'total_entities': len(entities),
        'active_entities': sum(1 for e in entities if e.active),
        'by_sector': ranked(by_sector),
        'by_type': ranked(by_type),
    }
