"""Small value normalizers and range checks shared by Settings validators."""


def to_uppercase(value: str | None) -> str | None:
    """Strip and uppercase an env value; None passes through."""
    if value is None:
        return None
    return value.strip().upper()


def to_lowercase(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower()


def require_at_least(value: int | float, minimum: int | float, name: str) -> int | float:
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}")
    return value


def require_positive(value: int | float, name: str) -> int | float:
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value
