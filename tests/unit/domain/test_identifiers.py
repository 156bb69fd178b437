"""Tests for composite season and episode identifiers."""

from __future__ import annotations

from mediabridge.domain.identifiers import EpisodeRef, SeasonRef


class TestSeasonRef:
    def test_encode(self) -> None:
        assert SeasonRef(media_id="tv/show-1", season=2).encode() == "tv/show-1|2"

    def test_parse_round_trip(self) -> None:
        ref = SeasonRef(media_id="tv/show-1", season=3)
        assert SeasonRef.parse(ref.encode()) == ref

    def test_parse_without_separator_is_season_one(self) -> None:
        assert SeasonRef.parse("movie/inception") == SeasonRef("movie/inception", 1)

    def test_parse_non_numeric_suffix_is_season_one(self) -> None:
        assert SeasonRef.parse("tv/show|abc") == SeasonRef("tv/show", 1)

    def test_parse_splits_on_last_separator(self) -> None:
        assert SeasonRef.parse("a|b|4") == SeasonRef("a|b", 4)


class TestEpisodeRef:
    def test_encode_with_media_id(self) -> None:
        ref = EpisodeRef(episode_id="1234", media_id="tv/show-1")
        assert ref.encode() == "1234|tv/show-1"

    def test_encode_without_media_id_is_bare(self) -> None:
        assert EpisodeRef(episode_id="1234").encode() == "1234"

    def test_encode_same_ids_is_bare(self) -> None:
        assert EpisodeRef(episode_id="x", media_id="x").encode() == "x"

    def test_parse(self) -> None:
        assert EpisodeRef.parse("1234|movie/inception") == EpisodeRef(
            "1234", "movie/inception"
        )

    def test_parse_bare(self) -> None:
        assert EpisodeRef.parse("1234") == EpisodeRef("1234", "")
