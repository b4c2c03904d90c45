from pydantic import BaseModel, Field


class PlaylistItem(BaseModel):
    video_id: str = Field(alias="videoId")
    title: str
    thumbnail: str = ""
    duration: int = 0  # seconds
    position: int = 0
    channel_name: str = Field("", alias="channelName")

    class Config:
        populate_by_name = True


class PlaylistPage(BaseModel):
    videos: list[PlaylistItem] = []
    playlist_title: str = Field("Playlist", alias="playlistTitle")
    total_results: int = Field(0, alias="totalResults")
    next_page_token: str | None = Field(None, alias="nextPageToken")

    class Config:
        populate_by_name = True
