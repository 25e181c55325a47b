"""
Tests for LockService and the optional per-user creation lock
"""
from unittest.mock import Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from carts.errors import InternalError
from carts.services.cart_service import CartService
from carts.services.lock_service import LockService


class FakeLockService:
    """In-memory stand-in recording acquire/release calls."""

    def __init__(self, grant=True):
        self.grant = grant
        self.held = {}
        self.calls = []

    def acquire_user_lock(self, user_id, token, ttl):
        self.calls.append(("acquire", user_id, ttl))
        if not self.grant or user_id in self.held:
            return False
        self.held[user_id] = token
        return True

    def release_user_lock(self, user_id, token):
        self.calls.append(("release", user_id))
        if self.held.get(user_id) == token:
            del self.held[user_id]
            return True
        return False


@pytest.fixture
def redis_client():
    return Mock()


class TestLockService:

    def test_acquire_uses_set_nx_ex(self, redis_client, user_id):
        redis_client.set.return_value = True
        svc = LockService(client=redis_client)

        assert svc.acquire_user_lock(user_id, "token-1", ttl=10) is True
        redis_client.set.assert_called_once_with(
            name=f"cart:create:user:{user_id}", value="token-1", nx=True, ex=10
        )

    def test_acquire_taken(self, redis_client, user_id):
        redis_client.set.return_value = None
        svc = LockService(client=redis_client)

        assert svc.acquire_user_lock(user_id, "token-1", ttl=10) is False

    def test_release_compares_token(self, redis_client, user_id):
        redis_client.eval.return_value = 0
        svc = LockService(client=redis_client)

        assert svc.release_user_lock(user_id, "someone-else") is False
        args = redis_client.eval.call_args.args
        assert args[1:] == (1, f"cart:create:user:{user_id}", "someone-else")

    def test_acquire_retries_transient_redis_errors(self, redis_client, user_id):
        redis_client.set.side_effect = [RedisConnectionError("down"), True]
        svc = LockService(client=redis_client)

        assert svc.acquire_user_lock(user_id, "token-1", ttl=10) is True
        assert redis_client.set.call_count == 2


class TestCreationLock:

    def test_lock_wraps_get_or_create(self, db, user_id):
        lock = FakeLockService()
        svc = CartService(db, lock_service=lock)

        first = svc.get_or_create_cart(user_id)
        second = svc.get_or_create_cart(user_id)

        assert first.id == second.id
        assert [c[0] for c in lock.calls] == ["acquire", "release", "acquire", "release"]
        assert lock.held == {}

    def test_lock_timeout(self, db, user_id, monkeypatch):
        monkeypatch.setattr("carts.services.cart_service.CART_CREATE_LOCK_WAIT_SECONDS", 0.3)
        svc = CartService(db, lock_service=FakeLockService(grant=False))

        with pytest.raises(InternalError):
            svc.get_or_create_cart(user_id)

    def test_lock_released_on_failure(self, db, user_id, monkeypatch):
        lock = FakeLockService()
        svc = CartService(db, lock_service=lock)
        monkeypatch.setattr(svc, "_get_or_create", Mock(side_effect=InternalError("boom")))

        with pytest.raises(InternalError):
            svc.get_or_create_cart(user_id)

        assert lock.held == {}
