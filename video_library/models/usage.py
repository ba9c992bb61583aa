"""Usage records: one row per reference to a video asset."""

import enum
from sqlalchemy import Column, Integer, String, Enum, TIMESTAMP, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from video_library.models.base import Base, utcnow

# Value callers send as a course id to mean "previewed in the course editor".
PREVIEW_COURSE_ID = "preview"


class UsageKind(str, enum.Enum):
    """What kind of reference a usage record documents."""
    COURSE = "course"
    PREVIEW = "preview"


class UsageRecord(Base):
    """Append-only usage record.

    Course usages carry weak references (ids plus a title snapshot) to the
    course, module, chapter and lesson that embed the asset. Preview usages
    carry only the access time and an optional referrer.
    """

    __tablename__ = "video_usage_records"
    __table_args__ = (
        CheckConstraint(
            "(kind = 'course' AND course_id IS NOT NULL AND course_title IS NOT NULL)"
            " OR (kind = 'preview' AND course_id IS NULL)",
            name="ck_video_usage_records_kind_fields",
        ),
        CheckConstraint(
            f"course_id IS NULL OR course_id <> '{PREVIEW_COURSE_ID}'",
            name="ck_video_usage_records_no_preview_course",
        ),
    )

    record_id = Column(Integer, primary_key=True, autoincrement=True)
    asset_id = Column(Uuid, ForeignKey("video_assets.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(
        Enum(UsageKind, name="usage_kind", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        index=True,
    )
    course_id = Column(String(64), nullable=True, index=True)
    course_title = Column(String(200), nullable=True)
    module_id = Column(String(64), nullable=True)
    chapter_id = Column(String(64), nullable=True)
    lesson_id = Column(String(64), nullable=True)
    referrer = Column(String(255), nullable=True)
    used_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    # Relationships
    asset = relationship("VideoAsset", back_populates="usage_records")

    @property
    def is_preview(self) -> bool:
        return self.kind == UsageKind.PREVIEW

    def __repr__(self):
        return f"<UsageRecord(record_id={self.record_id}, asset_id={self.asset_id}, kind={self.kind})>"
