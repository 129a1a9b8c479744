"""
Shared pytest fixtures for content access tests.

Provides an in-memory SQLite session, row factories for tiers, content and
subscriptions, a dict-backed Redis stand-in, and token service fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from content_access.db_base import Base
from content_access.models import Content, ContentType, Subscription, SubscriptionStatus, Tier, Visibility
from content_access.token_store import AccessTokenStore
from content_access.tokens import AccessTokenConfig, AccessTokenService

TEST_SECRET = "test-content-access-secret-0123456789abcdef"

ARTIST_ID = "artist-1"
OTHER_ARTIST_ID = "artist-2"
FAN_ID = "fan-1"

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def db_session():
    """Create in-memory SQLite database session for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def make_tier(db_session):
    def _make(artist_id=ARTIST_ID, name="Supporter", is_active=True, **kwargs):
        tier = Tier(artist_id=artist_id, name=name, is_active=is_active, **kwargs)
        db_session.add(tier)
        db_session.commit()
        return tier

    return _make


@pytest.fixture
def make_content(db_session):
    def _make(
        artist_id=ARTIST_ID,
        visibility=Visibility.TIER_LOCKED,
        tiers=(),
        content_type=ContentType.AUDIO,
        title="Untitled",
        created_at=None,
    ):
        content = Content(
            artist_id=artist_id,
            title=title,
            content_type=content_type,
            visibility=visibility,
            tiers=list(tiers),
        )
        if created_at is not None:
            content.created_at = created_at
        db_session.add(content)
        db_session.commit()
        return content

    return _make


@pytest.fixture
def make_subscription(db_session):
    def _make(
        tier,
        fan_id=FAN_ID,
        artist_id=None,
        status=SubscriptionStatus.ACTIVE,
        current_period_end=None,
        amount=5,
    ):
        subscription = Subscription(
            fan_id=fan_id,
            artist_id=artist_id or tier.artist_id,
            tier_id=tier.id,
            status=status,
            current_period_end=current_period_end or NOW + timedelta(days=30),
            amount=amount,
        )
        db_session.add(subscription)
        db_session.commit()
        return subscription

    return _make


# ============================================================================
# REDIS
# ============================================================================

class FakeRedis:
    """Dict-backed subset of the redis.Redis API used by AccessTokenStore."""

    def __init__(self):
        self.values = {}
        self.sets = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self.values[key] = value.encode("utf-8") if isinstance(value, str) else value
        self.ttls[key] = int(ttl)
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None or self.sets.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def exists(self, key):
        return int(key in self.values or key in self.sets)

    def sadd(self, key, *members):
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(m.encode("utf-8") if isinstance(m, str) else m for m in members)
        return len(bucket) - before

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def scard(self, key):
        return len(self.sets.get(key, set()))

    def ttl(self, key):
        if key not in self.values and key not in self.sets:
            return -2
        return self.ttls.get(key, -1)

    def expire(self, key, ttl):
        if key not in self.values and key not in self.sets:
            return False
        self.ttls[key] = int(ttl)
        return True

    def srem(self, key, *members):
        bucket = self.sets.get(key)
        if bucket is None:
            return 0
        before = len(bucket)
        bucket.difference_update(m.encode("utf-8") if isinstance(m, str) else m for m in members)
        if not bucket:
            self.sets.pop(key, None)
            self.ttls.pop(key, None)
        return before - len(bucket)

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues FakeRedis calls and applies them in order on execute()."""

    def __init__(self, client):
        self._client = client
        self._calls = []

    def __getattr__(self, name):
        method = getattr(self._client, name)

        def queue(*args, **kwargs):
            self._calls.append((method, args, kwargs))
            return self

        return queue

    def execute(self):
        calls, self._calls = self._calls, []
        return [method(*args, **kwargs) for method, args, kwargs in calls]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def token_store(fake_redis):
    return AccessTokenStore(fake_redis)


# ============================================================================
# TOKENS
# ============================================================================

@pytest.fixture
def token_config():
    return AccessTokenConfig(secret=TEST_SECRET)


@pytest.fixture
def token_service(token_config):
    return AccessTokenService(config=token_config)


@pytest.fixture
def revocable_token_service(token_config, token_store):
    return AccessTokenService(config=token_config, token_store=token_store)


@pytest.fixture
def now():
    """Fixed evaluation instant; subscriptions default to ending 30 days later."""
    return NOW
