import uuid
from sqlalchemy import String, ForeignKey, Integer, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studybrain.db.base import Base


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (UniqueConstraint("user_id", "youtube_id", name="uq_videos_user_youtube_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    youtube_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    channel_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("youtube_sources.id", ondelete="SET NULL"), nullable=True)
    playlist_position: Mapped[int | None] = mapped_column(Integer, nullable=True)  # display only

    source = relationship("YouTubeSource", back_populates="videos")
    clips = relationship("Clip", back_populates="video", passive_deletes=True)
