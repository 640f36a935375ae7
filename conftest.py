import pytest

from dampen.model import PythonModel


@pytest.fixture
def model():
    """A small model covering every kind of binding value."""
    return PythonModel(
        {
            "count": 42,
            "price": 9.5,
            "name": "Alice",
            "enabled": True,
            "nothing": None,
            "items": ["a", "b", "c"],
            "empty": [],
            "user": {"name": "Alice", "age": 30, "tags": ["admin", "dev"]},
            "rows": [{"title": "first", "done": False}],
            "a": 5,
            "b": 3,
        }
    )


@pytest.fixture
def shared_model():
    return PythonModel({"theme": "dark", "user_count": 3})
