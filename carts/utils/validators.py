# carts/utils/validators.py
from uuid import UUID

from carts.errors import InvalidArgument


def parse_uuid(value, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        raise InvalidArgument(f"invalid {field} format")
    try:
        return UUID(value)
    except ValueError as e:
        raise InvalidArgument(f"invalid {field} format: {value!r}") from e


def parse_optional_uuid(value, field: str) -> UUID | None:
    if value is None or value == "":
        return None
    return parse_uuid(value, field)


def require_positive(value, field: str) -> int:
    # bool is an int subclass, True must not pass as quantity 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{field} must be an integer")
    if value <= 0:
        raise InvalidArgument(f"{field} must be positive")
    return value


def require_non_negative(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{field} must be an integer")
    if value < 0:
        raise InvalidArgument(f"{field} must not be negative")
    return value
