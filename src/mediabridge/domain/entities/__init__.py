from .media import (
    QUALITY_AUTO,
    Episode,
    Media,
    MediaDetails,
    MediaKind,
    Season,
    Server,
    ServerAttempt,
    Source,
    StreamType,
    StreamURL,
    Subtitle,
    VideoSources,
)

__all__ = [
    "QUALITY_AUTO",
    "Episode",
    "Media",
    "MediaDetails",
    "MediaKind",
    "Season",
    "Server",
    "ServerAttempt",
    "Source",
    "StreamType",
    "StreamURL",
    "Subtitle",
    "VideoSources",
]
