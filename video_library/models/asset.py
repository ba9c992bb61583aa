"""Video asset catalog models."""

from uuid import uuid4
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Integer,
    Float,
    Boolean,
    TIMESTAMP,
    ForeignKey,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from video_library.models.base import Base, utcnow


class VideoAsset(Base):
    """One catalog entry per distinct video object in storage."""

    __tablename__ = "video_assets"
    __table_args__ = (
        CheckConstraint("usage_count >= 0", name="ck_video_assets_usage_count_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    storage_key = Column(String(512), nullable=False, unique=True)
    url = Column(String(1024), nullable=False)
    size_bytes = Column(BigInteger, nullable=False, index=True)
    duration_s = Column(Float, nullable=True, index=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    original_file_name = Column(String(255), nullable=False)
    mime_type = Column(String(127), nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)

    uploaded_by = Column(String(64), nullable=True, index=True)  # external user id, not a FK
    upload_date = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, index=True)

    usage_count = Column(Integer, nullable=False, default=0, index=True)
    is_public = Column(Boolean, nullable=False, default=True)

    # Technical metadata
    resolution = Column(String(32), nullable=True)
    format = Column(String(32), nullable=True)
    bitrate = Column(Integer, nullable=True)
    frame_rate = Column(Float, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    category_rows = relationship(
        "AssetCategory",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="AssetCategory.position",
    )
    tag_rows = relationship(
        "AssetTag",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="AssetTag.position",
    )
    usage_records = relationship(
        "UsageRecord",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="UsageRecord.record_id",
    )

    @property
    def categories(self) -> list[str]:
        return [row.name for row in self.category_rows]

    @property
    def tags(self) -> list[str]:
        return [row.name for row in self.tag_rows]

    def __repr__(self):
        return f"<VideoAsset(id={self.id}, storage_key={self.storage_key}, usage_count={self.usage_count})>"


class AssetCategory(Base):
    """Category label attached to a video asset."""

    __tablename__ = "video_asset_categories"

    asset_id = Column(Uuid, ForeignKey("video_assets.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(50), primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)

    asset = relationship("VideoAsset", back_populates="category_rows")

    def __repr__(self):
        return f"<AssetCategory(asset_id={self.asset_id}, name={self.name})>"


class AssetTag(Base):
    """Free-form tag attached to a video asset."""

    __tablename__ = "video_asset_tags"

    asset_id = Column(Uuid, ForeignKey("video_assets.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(30), primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)

    asset = relationship("VideoAsset", back_populates="tag_rows")

    def __repr__(self):
        return f"<AssetTag(asset_id={self.asset_id}, name={self.name})>"
