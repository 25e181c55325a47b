# carts/services/transaction.py
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from carts.errors import CartError, ConstraintViolation, InternalError
from carts.repos.cart_repo import CartRepo
from carts.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def atomic(repo: CartRepo, action: str):
    """
    Runs the block as one unit: commit on success, rollback on any error.

    Storage errors come out as ConstraintViolation / InternalError,
    domain errors (CartError) propagate unchanged.
    """
    try:
        yield
        repo.commit()
    except CartError:
        repo.rollback()
        raise
    except IntegrityError as e:
        repo.rollback()
        logger.error(f"Constraint violation during {action}: {e.orig}")
        raise ConstraintViolation(f"constraint violation during {action}") from e
    except SQLAlchemyError as e:
        repo.rollback()
        logger.error(f"Storage failure during {action}: {e}")
        raise InternalError(f"failed to {action.replace('_', ' ')}") from e
    except BaseException:
        repo.rollback()
        raise
