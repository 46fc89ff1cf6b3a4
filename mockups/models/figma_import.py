import uuid

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from mockups.models.base import Base, TimestampMixin, UUIDMixin


class FigmaImport(Base, UUIDMixin, TimestampMixin):
    """Provenance of an asset created from a Figma file."""

    __tablename__ = "figma_imports"

    file_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Node id for single-frame imports, "smart-flow" / "ai-flow" / "sequence-flow" for videos
    frame_id: Mapped[str] = mapped_column(String(100), nullable=False)
    frame_name: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<FigmaImport {self.file_id}/{self.frame_id}>"
