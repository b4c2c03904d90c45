import uuid
from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean, Text, Uuid, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime

from studybrain.db.base import Base


class Clip(Base):
    __tablename__ = "clips"
    __table_args__ = (
        CheckConstraint("start_time >= 0 AND start_time < end_time", name="ck_clips_time_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    sub_topic_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("sub_topics.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds
    end_time: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    sub_topic = relationship("SubTopic", back_populates="clips")
    video = relationship("Video", back_populates="clips")
