import pytest

from inventory_sync.services.memory import MemoryStore


@pytest.fixture
def make_record():
    """Factory for records shaped the way they are persisted in the store."""

    def _make(key, name="Widget", category="Tools", price=20, stock=4, discounted=None):
        return {
            "id": key,
            "nombre": name,
            "precioOriginal": price,
            "precioConDescuento": discounted if discounted is not None else round(price * 0.9, 2),
            "categoria": category,
            "stock": stock,
        }

    return _make


@pytest.fixture
def store(make_record):
    return MemoryStore({
        "products": {
            "p-a": make_record("p-a", name="Hammer", price=10, stock=2),
            "p-b": make_record("p-b", name="Saw", price=5, stock=3),
        }
    }, record_calls=True)


@pytest.fixture
def empty_store():
    return MemoryStore(record_calls=True)
