import json

import pytest

from schemaflow.common.logger import init_logger
from schemaflow.core.models import SchemaPlan
from schemaflow.llm.scripted_client import ScriptedClient
from schemaflow.storage.memory_store import MemoryStore


# Orders are listed first on purpose: the pipeline must still run parents first.
PLAN_WIRE = {
    "schema": {
        "orders": {
            "columns": ["order_id", "Order No", "customer_id", "product_id", "Qty"],
            "primary_key": "order_id",
            "natural_key_for_uniqueness": ["Order No"],
            "foreign_keys": {
                "customer_id": "customers.customer_id",
                "product_id": "products.product_id",
            },
        },
        "customers": {
            "columns": ["customer_id", "Customer Name", "Email"],
            "primary_key": "customer_id",
            "natural_key_for_uniqueness": ["Customer Name"],
            "foreign_keys": {},
        },
        "products": {
            "columns": ["product_id", "Product", "Price"],
            "primary_key": "product_id",
            "natural_key_for_uniqueness": ["Product"],
            "foreign_keys": {},
        },
    }
}

ROWS = [
    {"Order No": "O1", "Customer Name": "Alice", "Email": "alice@example.com", "Product": "Widget", "Price": 2.5, "Qty": 1},
    {"Order No": "O2", "Customer Name": "Bob", "Email": "bob@example.com", "Product": "Gadget", "Price": 5.0, "Qty": 2},
    {"Order No": "O3", "Customer Name": "Alice", "Email": "alice@example.com", "Product": "Gadget", "Price": 5.0, "Qty": 3},
    {"Order No": "O1", "Customer Name": "Alice", "Email": "alice@example.com", "Product": "Widget", "Price": 2.5, "Qty": 1},
]

CSV_TEXT = (
    "Order No,Customer Name,Email,Product,Price,Qty\n"
    "O1,Alice,alice@example.com,Widget,2.5,1\n"
    "O2,Bob,bob@example.com,Gadget,5.0,2\n"
    "O3,Alice,alice@example.com,Gadget,5.0,3\n"
    "O1,Alice,alice@example.com,Widget,2.5,1\n"
)


@pytest.fixture(autouse=True)
def quiet_logger():
    """Every test starts (and ends) with the default user/text logger."""
    init_logger("user", "text")
    yield
    init_logger("user", "text")


@pytest.fixture
def plan_wire():
    return json.loads(json.dumps(PLAN_WIRE))


@pytest.fixture
def plan(plan_wire):
    return SchemaPlan.model_validate(plan_wire)


@pytest.fixture
def rows():
    return [dict(r) for r in ROWS]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def scripted():
    return ScriptedClient()


@pytest.fixture
def csv_file(tmp_path):
    """Factory writing a CSV file under tmp_path."""
    def _write(text=CSV_TEXT, name="orders.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write
