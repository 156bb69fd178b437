"""Typed composite identifiers.

Some sites need two keys to address a season or an episode. Callers only
ever see opaque strings, so the pair is encoded as ``left|right`` at the
boundary and parsed back here. Nothing else should split on ``|``.
"""

from __future__ import annotations

from dataclasses import dataclass

SEPARATOR = "|"


@dataclass(frozen=True)
class SeasonRef:
    """``<media id>|<season number>``."""

    media_id: str
    season: int = 1

    def encode(self) -> str:
        return f"{self.media_id}{SEPARATOR}{self.season}"

    @classmethod
    def parse(cls, value: str) -> SeasonRef:
        """Parse a season id.

        An id without a separator addresses season 1 of that media id. A
        suffix that is not a number also falls back to season 1.
        """
        media_id, sep, number = value.rpartition(SEPARATOR)
        if not sep:
            return cls(media_id=value, season=1)
        try:
            season = int(number.strip())
        except ValueError:
            season = 1
        return cls(media_id=media_id, season=season)


@dataclass(frozen=True)
class EpisodeRef:
    """``<episode id>|<media id>``; the media id part may be absent."""

    episode_id: str
    media_id: str = ""

    def encode(self) -> str:
        if not self.media_id or self.media_id == self.episode_id:
            return self.episode_id
        return f"{self.episode_id}{SEPARATOR}{self.media_id}"

    @classmethod
    def parse(cls, value: str) -> EpisodeRef:
        episode_id, _, media_id = value.partition(SEPARATOR)
        return cls(episode_id=episode_id, media_id=media_id)
