from uuid import UUID


def is_uuid(v) -> bool:
    try:
        UUID(str(v))
        return True
    except (TypeError, ValueError):
        return False
