"""Port the resolution pipeline drives."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from mediabridge.domain.entities.media import Server, VideoSources


@runtime_checkable
class ServerSitePort(Protocol):
    """A site that lists servers for an episode and extracts one at a time."""

    async def discover_servers(self, episode_id: str) -> list[Server]: ...

    async def extract_server(self, server: Server) -> VideoSources: ...
