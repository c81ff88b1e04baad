import uuid


def new_id() -> str:
    """Primary keys are UUID4 strings so SQLite and PostgreSQL share one column type."""
    return str(uuid.uuid4())
