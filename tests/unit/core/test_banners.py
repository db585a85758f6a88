"""Unit tests for banner candidacy, screen placement and ranking."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from inbox_targeting.core.banners import (
    BANNER_CAP,
    SCREEN_CONTEXT_TAGS,
    is_banner_eligible,
    is_banner_for_screen,
    is_valid_banner_tag_combination,
    parse_screen_context,
    rank_banners,
    select_banners,
)
from inbox_targeting.types import UserContext
from tests.fixtures.factories import MessageFactory, urgent_message


@pytest.mark.unit
class TestValidBannerTagCombination:
    """Test the {emergency, one context} shape."""

    @pytest.mark.parametrize(
        "tags",
        [
            ["hitno", "promet"],
            ["kultura", "hitno"],
            ["hitno", "opcenito"],
            ["hitno", "vis"],
            ["hitno", "komiza"],
            ["hitno", "cestovni_promet"],
            ["hitno", "cestovni_promet", "pomorski_promet"],
        ],
    )
    def test_accepted(self, tags: list[str]) -> None:
        assert is_valid_banner_tag_combination(tags) is True

    @pytest.mark.parametrize(
        "tags",
        [
            [],
            ["hitno"],
            ["hitno", "hitno"],
            ["promet", "kultura"],
            ["hitno", "promet", "kultura"],
            ["opcenito"],
        ],
    )
    def test_rejected(self, tags: list[str]) -> None:
        assert is_valid_banner_tag_combination(tags) is False


@pytest.mark.unit
class TestBannerEligibility:
    """Test the composed banner checks."""

    def test_transport_scenario(self, now: datetime, visitor: UserContext) -> None:
        """Test an urgent transport banner open from yesterday to tomorrow."""
        message = urgent_message(context="promet", now=now)
        assert is_banner_eligible(message, visitor, now) is True
        assert is_banner_for_screen(message, "transport") is True
        assert is_banner_for_screen(message, "events") is False

    def test_closed_window(self, make_message: MessageFactory, now: datetime, visitor: UserContext) -> None:
        message = make_message(
            tags=["hitno", "promet"],
            active_from=now + timedelta(hours=1),
            active_to=now + timedelta(days=1),
        )
        assert is_banner_eligible(message, visitor, now) is False

    def test_municipal_banner_gated(
        self, now: datetime, visitor: UserContext, vis_local: UserContext
    ) -> None:
        message = urgent_message(context="vis", now=now)
        assert is_banner_eligible(message, vis_local, now) is True
        assert is_banner_eligible(message, visitor, now) is False

    def test_emergency_only_is_never_a_banner(
        self, make_message: MessageFactory, now: datetime, visitor: UserContext
    ) -> None:
        message = make_message(
            tags=["hitno"], active_from=now - timedelta(hours=1), active_to=now + timedelta(hours=1)
        )
        assert is_banner_eligible(message, visitor, now) is False


@pytest.mark.unit
class TestScreenPlacement:
    """Test the closed screen table."""

    def test_cultural_never_on_transport(self, now: datetime) -> None:
        message = urgent_message(context="kultura", now=now)
        assert is_banner_for_screen(message, "events") is True
        assert is_banner_for_screen(message, "transport") is False
        assert is_banner_for_screen(message, "home") is False

    @pytest.mark.parametrize("context", ["opcenito", "vis", "komiza"])
    def test_home_shows_general_and_municipal(self, now: datetime, context: str) -> None:
        assert is_banner_for_screen(urgent_message(context=context, now=now), "home") is True

    @pytest.mark.parametrize("screen", ["transport", "transport_road", "transport_sea"])
    def test_deprecated_alias_on_transport_screens(
        self, make_message: MessageFactory, screen: str
    ) -> None:
        message = make_message(tags=["hitno", "pomorski_promet"])
        assert is_banner_for_screen(message, screen) is True  # pyright: ignore[reportArgumentType]

    def test_table_is_closed(self) -> None:
        assert set(SCREEN_CONTEXT_TAGS) == {
            "home",
            "events",
            "transport",
            "transport_road",
            "transport_sea",
        }

    @pytest.mark.parametrize(
        ("raw", "expected"), [("home", "home"), ("transport_sea", "transport_sea"), ("map", None), (None, None)]
    )
    def test_parse_screen_context(self, raw: str | None, expected: str | None) -> None:
        assert parse_screen_context(raw) == expected


@pytest.mark.unit
class TestRanking:
    """Test ordering and capping."""

    def test_created_at_breaks_active_from_tie(self, make_message: MessageFactory, now: datetime) -> None:
        """Test that for equal active_from the newer message ranks first."""
        start = now - timedelta(days=1)
        b = make_message(id="b", active_from=start, created_at=now - timedelta(hours=2))
        a = make_message(id="a", active_from=start, created_at=now - timedelta(hours=1))
        assert [message.id for message in rank_banners([b, a])] == ["a", "b"]

    def test_active_from_dominates(self, make_message: MessageFactory, now: datetime) -> None:
        older_start = make_message(
            id="old", active_from=now - timedelta(days=2), created_at=now - timedelta(minutes=1)
        )
        newer_start = make_message(
            id="new", active_from=now - timedelta(days=1), created_at=now - timedelta(days=3)
        )
        assert [message.id for message in rank_banners([older_start, newer_start])] == ["new", "old"]

    def test_exact_ties_keep_input_order(self, make_message: MessageFactory, now: datetime) -> None:
        start = now - timedelta(days=1)
        created = now - timedelta(hours=1)
        first = make_message(id="first", active_from=start, created_at=created)
        second = make_message(id="second", active_from=start, created_at=created)
        assert [message.id for message in rank_banners([first, second])] == ["first", "second"]

    def test_select_filters_ranks_then_caps(
        self, make_message: MessageFactory, now: datetime, visitor: UserContext
    ) -> None:
        """Test that ineligible banners never consume cap slots."""
        end = now + timedelta(days=1)
        newest_hidden = make_message(
            id="hidden", tags=["hitno", "vis"], active_from=now - timedelta(minutes=1), active_to=end
        )
        wrong_screen = make_message(
            id="culture", tags=["hitno", "kultura"], active_from=now - timedelta(minutes=2), active_to=end
        )
        candidates = [
            make_message(
                id=f"home-{index}",
                tags=["hitno", "opcenito"],
                active_from=now - timedelta(hours=index + 1),
                active_to=end,
            )
            for index in range(5)
        ]

        result = select_banners([newest_hidden, wrong_screen, *candidates], visitor, "home", now)

        assert len(result) == BANNER_CAP
        assert [message.id for message in result] == ["home-0", "home-1", "home-2"]

    def test_select_empty_is_not_an_error(self, visitor: UserContext, now: datetime) -> None:
        assert select_banners([], visitor, "events", now) == []
