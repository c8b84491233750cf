"""Album mapping model.

A mapping links a physical tag UID to an artist/album pair. Rows are written
by the inventory UI; the scrobble pipeline only reads them.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from scrobbler.database import Base


class AlbumMapping(Base):
    __tablename__ = "album_mappings"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    rfid: Mapped[str] = mapped_column(String(64), nullable=False)
    artist: Mapped[str] = mapped_column(String(255), nullable=False)
    album: Mapped[str] = mapped_column(String(255), nullable=False)

    # Null means the mapping is not scoped to a single owner.
    owner_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<AlbumMapping {self.rfid} {self.artist!r} - {self.album!r} owner={self.owner_id}>"


# Lookups compare lower(rfid), so the indexes are on that expression.
Index("ix_album_mappings_rfid", func.lower(AlbumMapping.rfid))
Index("ix_album_mappings_owner_rfid", AlbumMapping.owner_id, func.lower(AlbumMapping.rfid))
