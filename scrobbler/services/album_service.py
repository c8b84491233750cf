"""Album lookup by tag UID.

Rules:
- Matching on ``rfid`` is case-insensitive.
- Without an owner the search spans every owner's mappings.
- Duplicate mappings are not reported; the first row by id wins.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from scrobbler.models.album import AlbumMapping
from scrobbler.schemas.album import AlbumRecord

logger = logging.getLogger(__name__)

# SQLSTATE 42P01 = undefined_table (PostgreSQL)
_MISSING_RELATION_SQLSTATES = {"42P01"}
_MISSING_RELATION_MARKERS = ("no such table",)


class StoreNotReadyError(RuntimeError):
    """The album store lacks the table or index the lookup depends on."""

    def __init__(self, detail: str):
        super().__init__(
            "The album store is not set up for tag lookups. Create the "
            f"'{AlbumMapping.__tablename__}' table and its index on the 'rfid' "
            f'field (run init_db or your migrations). Original error: "{detail}"'
        )
        self.detail = detail


def _is_missing_relation(exc: DBAPIError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _MISSING_RELATION_SQLSTATES:
        return True
    text = str(orig).lower()
    return any(marker in text for marker in _MISSING_RELATION_MARKERS)


class AlbumResolver:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_album_by_rfid(
        self,
        rfid: str,
        owner_id: str | None = None,
    ) -> AlbumRecord | None:
        """Return the album mapped to ``rfid``, or None if the tag is unmapped.

        Raises StoreNotReadyError if the store schema is missing.
        """
        scope = f"owner '{owner_id}'" if owner_id else "all owners"
        logger.info("Searching for RFID '%s' in %s...", rfid, scope)

        stmt = select(AlbumMapping).where(func.lower(AlbumMapping.rfid) == rfid.lower())
        if owner_id:
            stmt = stmt.where(AlbumMapping.owner_id == owner_id)
        stmt = stmt.order_by(AlbumMapping.id).limit(1)

        try:
            res = await self._db.execute(stmt)
        except DBAPIError as exc:
            if _is_missing_relation(exc):
                err = StoreNotReadyError(str(exc.orig))
                logger.error("%s", err)
                raise err from exc
            raise

        mapping = res.scalars().first()
        if mapping is None:
            return None
        return AlbumRecord.model_validate(mapping)
