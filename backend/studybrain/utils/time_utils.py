"""Duration formatting and YouTube id helpers."""
import re

_YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/playlist\?list=([^&\n?#]+)"),
    re.compile(r"youtube\.com/channel/([^&\n?#]+)"),
    re.compile(r"youtube\.com/@([^&\n?#/]+)"),
]

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def format_duration(seconds: int) -> str:
    """3661 -> "1:01:01", 65 -> "1:05"."""
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_time_to_seconds(value: str) -> int:
    """Parse "h:mm:ss", "m:ss" or plain seconds. Raises ValueError on non-numeric parts."""
    value = (value or "").strip()
    if not value:
        return 0
    parts = [int(p) for p in value.split(":")]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    return parts[0]


def extract_youtube_id(url: str) -> str | None:
    """Video, playlist, channel or @handle id from a YouTube URL."""
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def parse_iso8601_duration(value: str) -> int:
    # YouTube Data API contentDetails.duration, e.g. PT1H2M3S
    match = _ISO_DURATION.match(value or "")
    if not match:
        return 0
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds
