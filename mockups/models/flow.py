import uuid

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mockups.models.asset import Asset
from mockups.models.base import Base, TimestampMixin, UUIDMixin


class Flow(Base, UUIDMixin, TimestampMixin):
    """An ordered slideshow of library assets."""

    __tablename__ = "flows"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    figma_file_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    frames: Mapped[list["FlowFrame"]] = relationship(
        "FlowFrame",
        back_populates="flow",
        order_by="FlowFrame.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Flow {self.name} ({len(self.frames)} frames)>"


class FlowFrame(Base, UUIDMixin):
    __tablename__ = "flow_frames"

    flow_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("flows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    delay: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)  # milliseconds

    flow: Mapped[Flow] = relationship("Flow", back_populates="frames")
    asset: Mapped[Asset] = relationship("Asset", lazy="selectin")
