import pytest

from services.database import Database
from services.ledger import MemoryLedger
from services.stores import DestinationStore, ModelConfigStore


@pytest.fixture
def database(tmp_path) -> Database:
    return Database(str(tmp_path / "newsbot.db"))


@pytest.fixture
def destination_store(database) -> DestinationStore:
    return DestinationStore(database)


@pytest.fixture
def model_store(database) -> ModelConfigStore:
    return ModelConfigStore(database)


@pytest.fixture
def ledger() -> MemoryLedger:
    return MemoryLedger()
