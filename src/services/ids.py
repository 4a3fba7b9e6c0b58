# src/services/ids.py
import re
from dataclasses import dataclass
from typing import Literal, Optional

from .errors import UnsupportedPlatformError

Platform = Literal["youtube", "instagram", "tiktok"]

_YT_RE = re.compile(
    r"(?:youtube\.com/watch\?(?:.*&)?v=|youtube\.com/shorts/|youtu\.be/)([A-Za-z0-9_-]{11})"
)
_IG_RE = re.compile(r"instagram\.com/(?:reel|p)/([A-Za-z0-9_-]+)")
_TT_RE = re.compile(r"tiktok\.com/@[\w.-]+/video/(\d+)")
_TT_SHORT_RE = re.compile(r"vm\.tiktok\.com/([A-Za-z0-9]+)")

YOUTUBE_THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


@dataclass(frozen=True)
class VideoRef:
    platform: Platform
    video_id: str
    normalized_url: str


def detect_video(url: str) -> Optional[VideoRef]:
    """Platform, id and normalized URL of a supported video link, or None."""
    m = _YT_RE.search(url)
    if m:
        video_id = m.group(1)
        return VideoRef("youtube", video_id, f"https://www.youtube.com/watch?v={video_id}")

    m = _TT_RE.search(url) or _TT_SHORT_RE.search(url)
    if m:
        return VideoRef("tiktok", m.group(1), url)

    m = _IG_RE.search(url)
    if m:
        video_id = m.group(1)
        return VideoRef("instagram", video_id, f"https://www.instagram.com/reel/{video_id}/")

    return None


def require_video(url: str) -> VideoRef:
    ref = detect_video(url)
    if ref is None:
        raise UnsupportedPlatformError(
            "Unsupported video platform. Supported: YouTube, TikTok, Instagram"
        )
    return ref


def thumbnail_url(ref: VideoRef) -> Optional[str]:
    if ref.platform == "youtube":
        return YOUTUBE_THUMBNAIL_URL.format(video_id=ref.video_id)
    return None
