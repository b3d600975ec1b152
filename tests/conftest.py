import pytest
from pathlib import Path

from penny.anomaly import AnomalyDetector, AnomalySettings
from penny.categorization import Categorizer
from penny.database.connection import DatabaseConfig, DatabaseManager
from penny.repositories.sqlite_expense_repository import SQLiteExpenseRepository
from penny.services.expense_service import ExpenseService

FIXTURES_DIR = Path(__file__).parent / "fixtures"

@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch) -> Path:
    """Point user config at an empty directory so a developer's config/ never leaks in"""
    config_dir = tmp_path / "isolated_config"
    config_dir.mkdir()
    monkeypatch.setenv("PENNY_CONFIG_DIR", str(config_dir))
    return config_dir

@pytest.fixture
def db_manager(tmp_path):
    """
    Create a real test database.

    Database is automatically cleaned up after each test.
    """
    manager = DatabaseManager(DatabaseConfig(tmp_path / "test.db"))
    manager.initialize()

    yield manager

    manager.close()

@pytest.fixture
def repo(db_manager) -> SQLiteExpenseRepository:
    """Create a repository with a test database."""
    return SQLiteExpenseRepository(db_manager)

@pytest.fixture
def categorizer() -> Categorizer:
    """Categorizer with the built-in table only"""
    return Categorizer(config={"rules": []})

@pytest.fixture
def detector() -> AnomalyDetector:
    """Detector with the default thresholds"""
    return AnomalyDetector(AnomalySettings())

@pytest.fixture
def service(repo, categorizer, detector) -> ExpenseService:
    """Fully wired service on a real temp database"""
    return ExpenseService(repository=repo, categorizer=categorizer, detector=detector)

@pytest.fixture
def sample_csv_file() -> Path:
    """Provide the path of the ten-row sample import"""
    return FIXTURES_DIR / "sample_expenses.csv"

@pytest.fixture
def sample_csv(sample_csv_file) -> bytes:
    return sample_csv_file.read_bytes()

@pytest.fixture
def invalid_csv() -> bytes:
    """Sample import mixing good and bad rows"""
    return (FIXTURES_DIR / "invalid_expenses.csv").read_bytes()
