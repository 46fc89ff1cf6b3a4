from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mockups.models.base import Base, TimestampMixin, UUIDMixin


class Asset(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "assets"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Storage
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    # Null for assets registered by URL without a stored file
    storage_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)

    # Library metadata
    oem: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    screen_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # Mockup, Screenshot, Video, ...
    asset_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="Mockup", server_default="Mockup"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # File info
    format: Mapped[str] = mapped_column(String(20), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Asset {self.name} ({self.format})>"
