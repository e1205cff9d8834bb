import logging
import os
import pathlib
import sys
from typing import Dict, Optional

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import pdc`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from pdc.config import ConfigManager  # noqa: E402
from pdc.contract import AssetContract  # noqa: E402
from pdc.ledger import MemoryLedger  # noqa: E402

ORG1 = "Org1MSP"

PUBLIC_M1 = '{"doctype":"MOBILE","name":"m1","color":"red","size":5}'
PRIVATE_M1 = b'{"doctype":"MOBILE_PRIVATE","name":"m1","owner":"alice","price":100}'


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless PDC_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('PDC_RUN_SLOW')
    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set PDC_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Fresh configuration and logging per test, untouched by the caller's PDC_* environment."""
    for var in list(os.environ):
        if var.startswith("PDC_"):
            monkeypatch.delenv(var, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()
    root = logging.getLogger("pdc")
    for h in list(root.handlers):
        if getattr(h, "_pdc_handler", False):
            root.removeHandler(h)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def ledger() -> MemoryLedger:
    return MemoryLedger()


@pytest.fixture
def contract() -> AssetContract:
    return AssetContract()


@pytest.fixture
def make_ctx(ledger):
    """Build a transaction context on the shared ledger."""
    def _make(org: str = ORG1, transient: Optional[Dict[str, bytes]] = None, **kwargs):
        return ledger.begin(org, transient=transient, **kwargs)
    return _make


@pytest.fixture
def created_m1(ledger, contract, make_ctx):
    """Ledger holding asset m1 created by Org1."""
    ctx = make_ctx(ORG1, {"mobile_properties": PRIVATE_M1})
    contract.invoke(ctx, "CreateMobile", PUBLIC_M1)
    return ledger
