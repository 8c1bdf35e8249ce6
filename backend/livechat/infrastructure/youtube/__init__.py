from .youtube_client import YouTubeDataClient

__all__ = ["YouTubeDataClient"]
