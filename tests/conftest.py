"""Pytest configuration and fixtures"""
import os
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CART_CREATE_LOCK_ENABLED", "false")

from carts.data.database import create_db_engine, init_db  # noqa: E402
from carts.data.models.cart import CartModel, utcnow  # noqa: E402
from carts.services.admin_service import AdminCartService  # noqa: E402
from carts.services.cart_service import CartService  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions see each other's commits."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'carts.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cart_service(db):
    return CartService(db)


@pytest.fixture
def admin_service(db):
    return AdminCartService(db)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def product_id():
    return uuid4()


@pytest.fixture
def expire_cart(session_factory):
    """Moves a cart's expires_at into the past behind the services' back."""

    def _expire(cart_id, ago=timedelta(hours=1)):
        with session_factory() as session:
            session.execute(
                update(CartModel)
                .where(CartModel.id == cart_id)
                .values(expires_at=utcnow() - ago)
            )
            session.commit()

    return _expire


@pytest.fixture
def stored_cart(session_factory):
    """Reads the raw row, whatever its state."""

    def _get(cart_id):
        with session_factory() as session:
            cart = session.get(CartModel, cart_id)
            if cart is None:
                return None
            return {
                "version": cart.version,
                "deleted_at": cart.deleted_at,
                "items": [(i.product_id, i.quantity) for i in cart.items],
            }

    return _get
