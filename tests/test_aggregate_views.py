"""
Tests for ContentAccessAggregates.

Listing results must agree with check_content_access item by item, and the
summary counts must satisfy accessible = public + accessible_gated and
gated = total - public.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from content_access.aggregates import ContentAccessAggregates
from content_access.evaluator import ContentAccessEvaluator
from content_access.models import ContentType, SubscriptionStatus, Visibility
from content_access.results import ContentAccessSummary, ContentFilters, TierAccessSummary

ARTIST_ID = "artist-1"
FAN_ID = "fan-1"


@pytest.fixture
def aggregates(db_session):
    return ContentAccessAggregates(db_session)


@pytest.fixture
def catalogue(make_tier, make_content):
    """
    Artist catalogue:
    - 2 public, 1 private
    - tier-locked: [A], [A, B], [B], [] (orphaned)
    - 1 tier-locked item from another artist on tier A
    """
    tier_a = make_tier(name="A")
    tier_b = make_tier(name="B")
    items = {
        "public_1": make_content(visibility=Visibility.PUBLIC, content_type=ContentType.VIDEO),
        "public_2": make_content(visibility=Visibility.PUBLIC),
        "private": make_content(visibility=Visibility.PRIVATE),
        "locked_a": make_content(tiers=[tier_a], content_type=ContentType.VIDEO),
        "locked_ab": make_content(tiers=[tier_a, tier_b]),
        "locked_b": make_content(tiers=[tier_b]),
        "orphan": make_content(tiers=[]),
        "foreign": make_content(artist_id="artist-2", tiers=[tier_a]),
    }
    return tier_a, tier_b, items


# ============================================================================
# TEST SUITE: ACCESSIBLE CONTENT LISTING
# ============================================================================

class TestGetUserAccessibleContent:
    def test_fan_sees_public_and_subscribed_tiers(self, aggregates, catalogue, make_subscription, now):
        tier_a, _, items = catalogue
        make_subscription(tier_a)

        page = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, now=now)

        ids = {c.id for c in page.content}
        assert ids == {items[k].id for k in ("public_1", "public_2", "locked_a", "locked_ab")}
        assert page.pagination.total == 4

    def test_listing_agrees_with_item_checks(self, db_session, aggregates, catalogue, make_subscription, now):
        _, tier_b, items = catalogue
        make_subscription(tier_b)
        evaluator = ContentAccessEvaluator(db_session)

        page = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, ContentFilters(limit=100), now=now)

        listed = {c.id for c in page.content}
        for key, content in items.items():
            if content.artist_id != ARTIST_ID:
                continue
            granted = evaluator.check_content_access(FAN_ID, content.id, now=now).has_access
            assert (content.id in listed) == granted, key

    def test_anonymous_sees_only_public(self, aggregates, catalogue, now):
        _, _, items = catalogue

        page = aggregates.get_user_accessible_content(None, ARTIST_ID, now=now)

        assert {c.id for c in page.content} == {items["public_1"].id, items["public_2"].id}

    def test_owner_sees_everything(self, aggregates, catalogue, now):
        _, _, items = catalogue

        page = aggregates.get_user_accessible_content(ARTIST_ID, ARTIST_ID, now=now)

        assert page.pagination.total == 7
        assert items["foreign"].id not in {c.id for c in page.content}

    def test_expired_and_inactive_subscriptions_ignored(self, aggregates, catalogue, make_subscription, db_session, now):
        tier_a, tier_b, _ = catalogue
        make_subscription(tier_a, current_period_end=now - timedelta(seconds=1))
        make_subscription(tier_b, status=SubscriptionStatus.PAST_DUE)

        page = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, now=now)

        assert page.pagination.total == 2

    def test_type_filter(self, aggregates, catalogue, make_subscription, now):
        tier_a, _, items = catalogue
        make_subscription(tier_a)

        page = aggregates.get_user_accessible_content(
            FAN_ID, ARTIST_ID, ContentFilters(type=ContentType.VIDEO), now=now
        )

        assert {c.id for c in page.content} == {items["public_1"].id, items["locked_a"].id}

    def test_pagination(self, aggregates, make_content, now):
        created = [
            make_content(visibility=Visibility.PUBLIC, title=f"Item {i}", created_at=now - timedelta(minutes=i))
            for i in range(5)
        ]

        first = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, ContentFilters(page=1, limit=2), now=now)
        last = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, ContentFilters(page=3, limit=2), now=now)
        beyond = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, ContentFilters(page=4, limit=2), now=now)

        assert [c.id for c in first.content] == [created[0].id, created[1].id]
        assert first.pagination.total == 5
        assert first.pagination.total_pages == 3
        assert [c.id for c in last.content] == [created[4].id]
        assert beyond.content == ()
        assert beyond.pagination.total == 5

    def test_empty_catalogue(self, aggregates, now):
        page = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, now=now)

        assert page.content == ()
        assert page.pagination.total == 0
        assert page.pagination.total_pages == 0

    def test_repository_error_returns_empty_page(self, now):
        evaluator = MagicMock()
        evaluator.contents.accessible_content_query.side_effect = RuntimeError("db down")
        evaluator.active_subscriptions.return_value = []
        aggregates = ContentAccessAggregates(evaluator=evaluator)

        page = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, ContentFilters(page=2, limit=10), now=now)

        assert page.content == ()
        assert page.pagination.total == 0
        assert page.pagination.page == 2
        assert page.pagination.limit == 10


class TestContentFilters:
    def test_defaults(self):
        filters = ContentFilters()

        assert filters.page == 1
        assert filters.limit == 20
        assert filters.offset == 0

    def test_offset(self):
        assert ContentFilters(page=3, limit=25).offset == 50

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_bounds(self, kwargs):
        with pytest.raises(ValidationError):
            ContentFilters(**kwargs)

    def test_type_alias_and_field_name(self):
        assert ContentFilters(type="AUDIO").content_type == ContentType.AUDIO
        assert ContentFilters(content_type=ContentType.TEXT).content_type == ContentType.TEXT


# ============================================================================
# TEST SUITE: ACCESS SUMMARY
# ============================================================================

def _assert_consistent(summary: ContentAccessSummary):
    assert summary.accessible_content == summary.public_content + summary.accessible_gated_content
    assert summary.gated_content == summary.total_content - summary.public_content


class TestGetContentAccessSummary:
    def test_single_tier_subscriber(self, aggregates, catalogue, make_subscription, now):
        tier_a, _, _ = catalogue
        make_subscription(tier_a)

        summary = aggregates.get_content_access_summary(FAN_ID, ARTIST_ID, now=now)

        assert summary.total_content == 7
        assert summary.public_content == 2
        assert summary.gated_content == 5
        assert summary.accessible_gated_content == 2
        assert summary.accessible_content == 4
        assert summary.subscriptions == (TierAccessSummary(tier_id=tier_a.id, tier_name="A", content_count=2),)
        _assert_consistent(summary)

    def test_overlapping_tiers_counted_once(self, aggregates, catalogue, make_subscription, now):
        tier_a, tier_b, _ = catalogue
        make_subscription(tier_a, current_period_end=now + timedelta(days=60))
        make_subscription(tier_b, current_period_end=now + timedelta(days=10))

        summary = aggregates.get_content_access_summary(FAN_ID, ARTIST_ID, now=now)

        assert summary.accessible_gated_content == 3
        assert [(s.tier_name, s.content_count) for s in summary.subscriptions] == [("A", 2), ("B", 2)]
        _assert_consistent(summary)

    def test_no_subscriptions(self, aggregates, catalogue, now):
        summary = aggregates.get_content_access_summary(FAN_ID, ARTIST_ID, now=now)

        assert summary.accessible_content == 2
        assert summary.subscriptions == ()
        _assert_consistent(summary)

    def test_owner_summary(self, aggregates, catalogue, now):
        summary = aggregates.get_content_access_summary(ARTIST_ID, ARTIST_ID, now=now)

        assert summary.accessible_content == summary.total_content == 7
        assert summary.subscriptions == ()
        _assert_consistent(summary)

    def test_summary_matches_listing_total(self, aggregates, catalogue, make_subscription, now):
        _, tier_b, _ = catalogue
        make_subscription(tier_b)

        summary = aggregates.get_content_access_summary(FAN_ID, ARTIST_ID, now=now)
        page = aggregates.get_user_accessible_content(FAN_ID, ARTIST_ID, now=now)

        assert summary.accessible_content == page.pagination.total

    def test_repository_error_returns_zero_summary(self, now):
        evaluator = MagicMock()
        evaluator.contents.count_content.side_effect = RuntimeError("db down")
        aggregates = ContentAccessAggregates(evaluator=evaluator)

        summary = aggregates.get_content_access_summary(FAN_ID, ARTIST_ID, now=now)

        assert summary == ContentAccessSummary.empty()
        assert summary.subscriptions == ()
        _assert_consistent(summary)
