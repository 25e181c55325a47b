"""
Tests for AdminCartService
"""
import types
from uuid import uuid4

import pytest

from carts.errors import InvalidArgument, NotFound, NotFoundOrExpired
from carts.services.admin_service import AdminCartService


@pytest.fixture
def populated(cart_service, expire_cart):
    """Two users: one active cart each, plus a soft-deleted and an expired cart."""
    alice, bob = uuid4(), uuid4()

    deleted = cart_service.get_or_create_cart(alice)
    cart_service.add_item(deleted.id, uuid4(), 1)
    cart_service.soft_delete_cart(deleted.id, expected_version=2)

    expired = cart_service.get_or_create_cart(alice)
    expire_cart(expired.id)

    alice_active = cart_service.get_or_create_cart(alice)
    bob_active = cart_service.get_or_create_cart(bob)
    cart_service.add_item(bob_active.id, uuid4(), 3)

    return {
        "alice": alice,
        "bob": bob,
        "deleted": deleted.id,
        "expired": expired.id,
        "alice_active": alice_active.id,
        "bob_active": bob_active.id,
    }


class TestListCarts:

    def test_excludes_soft_deleted_but_not_expired(self, admin_service, populated):
        page = admin_service.list_carts()

        ids = {c.id for c in page.carts}
        assert ids == {populated["expired"], populated["alice_active"], populated["bob_active"]}
        assert page.total == 3

    def test_include_deleted(self, admin_service, populated):
        page = admin_service.list_carts(include_deleted=True)

        assert populated["deleted"] in {c.id for c in page.carts}
        assert page.total == 4

    def test_filter_by_user(self, admin_service, populated):
        page = admin_service.list_carts(user_id=str(populated["bob"]))

        assert [c.id for c in page.carts] == [populated["bob_active"]]
        assert page.carts[0].items[0].quantity == 3
        assert page.total == 1

    def test_pagination_keeps_full_total(self, admin_service, populated):
        first = admin_service.list_carts(include_deleted=True, limit=2, offset=0)
        second = admin_service.list_carts(include_deleted=True, limit=2, offset=2)

        assert len(first.carts) == 2
        assert len(second.carts) == 2
        assert first.total == second.total == 4
        assert not {c.id for c in first.carts} & {c.id for c in second.carts}

    def test_empty_store(self, admin_service):
        page = admin_service.list_carts()
        assert page.carts == []
        assert page.total == 0

    @pytest.mark.parametrize("kwargs", [{"limit": -1}, {"offset": -5}, {"user_id": "nope"}])
    def test_invalid_arguments(self, admin_service, kwargs):
        with pytest.raises(InvalidArgument):
            admin_service.list_carts(**kwargs)


class TestForceDelete:

    def test_force_delete_is_unrecoverable(self, admin_service, cart_service, user_id, stored_cart):
        cart = cart_service.get_or_create_cart(user_id)
        cart = cart_service.add_item(cart.id, uuid4(), 2)

        result = admin_service.force_delete_cart(cart.id)

        assert result.success is True
        assert stored_cart(cart.id) is None
        with pytest.raises(NotFoundOrExpired):
            cart_service.get_cart(cart.id)
        assert cart.id not in {c.id for c in admin_service.list_carts(include_deleted=True).carts}
        with pytest.raises(NotFound):
            admin_service.restore_cart(cart.id)

    def test_force_delete_ignores_state(self, admin_service, cart_service, user_id, expire_cart, stored_cart):
        cart = cart_service.get_or_create_cart(user_id)
        cart_service.soft_delete_cart(cart.id, expected_version=1)
        expire_cart(cart.id)

        admin_service.force_delete_cart(cart.id)

        assert stored_cart(cart.id) is None

    def test_force_delete_missing_cart(self, admin_service):
        with pytest.raises(NotFound):
            admin_service.force_delete_cart(uuid4())


class TestRestore:

    def test_restore_soft_deleted_cart(self, admin_service, cart_service, user_id, product_id):
        cart = cart_service.get_or_create_cart(user_id)
        cart_service.add_item(cart.id, product_id, 2)
        cart_service.soft_delete_cart(cart.id, expected_version=2)

        restored = admin_service.restore_cart(cart.id)

        assert restored.deleted_at is None
        assert restored.version == 4
        fetched = cart_service.get_cart(cart.id)
        assert fetched.version == 4
        assert fetched.items[0].quantity == 2

    def test_restore_needs_no_version(self, admin_service, cart_service, user_id):
        cart = cart_service.get_or_create_cart(user_id)
        cart_service.soft_delete_cart(cart.id, expected_version=1)

        # any caller, any observed version
        assert admin_service.restore_cart(str(cart.id)).version == 3

    def test_restore_missing_cart(self, admin_service):
        with pytest.raises(NotFound):
            admin_service.restore_cart(uuid4())


class TestExportCarts:

    def test_export_is_lazy(self, admin_service, populated):
        carts = admin_service.export_carts()

        assert isinstance(carts, types.GeneratorType)
        assert {c.id for c in carts} == {
            populated["expired"],
            populated["alice_active"],
            populated["bob_active"],
        }

    def test_export_restarts_per_call(self, admin_service, populated):
        assert len(list(admin_service.export_carts(include_deleted=True))) == 4
        assert len(list(admin_service.export_carts(include_deleted=True))) == 4

    def test_export_filters_and_paginates(self, db, populated):
        svc = AdminCartService(db, export_batch_size=1)

        alice = list(svc.export_carts(user_id=populated["alice"], include_deleted=True))
        assert {c.id for c in alice} == {populated["deleted"], populated["expired"], populated["alice_active"]}

        page = list(svc.export_carts(include_deleted=True, limit=1, offset=1))
        assert len(page) == 1

    def test_export_has_no_side_effects(self, admin_service, populated, stored_cart):
        before = stored_cart(populated["bob_active"])
        list(admin_service.export_carts())
        assert stored_cart(populated["bob_active"]) == before

    def test_export_validates_eagerly(self, admin_service):
        with pytest.raises(InvalidArgument):
            admin_service.export_carts(limit=-1)
