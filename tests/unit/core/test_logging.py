import asyncio
import logging

import pytest

from mezastar_helper.core.asyncio_utils import create_logged_task
from mezastar_helper.core.logging_config import configure_logging
from mezastar_helper.core.logging_utils import get_module_logger, redact_token


@pytest.fixture()
def root_handlers():
    """Restore the root logger after a test rebuilds it."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_module_logger_prefixes_component(caplog):
    caplog.set_level(logging.DEBUG, logger="mezastar_helper")
    logger = get_module_logger("IdentityStore")

    logger.info("Stored %d trainers", 3)

    record = caplog.records[-1]
    assert record.name == "mezastar_helper.IdentityStore"
    assert record.getMessage() == "[IdentityStore] Stored 3 trainers"


def test_redact_token():
    assert redact_token("0123456789abcdef") == "01234567..."
    assert redact_token("short") == "short"


def test_configure_logging_writes_file(tmp_path, root_handlers):
    log_file = tmp_path / "logs" / "helper.log"

    configure_logging("info", force=True, log_file=log_file)
    get_module_logger("Test").info("hello")
    get_module_logger("Test").debug("hidden")
    for handler in root_handlers.handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "[Test] hello" in text
    assert "hidden" not in text
    assert root_handlers.level == logging.INFO


def test_configure_logging_rejects_unknown_level(root_handlers):
    with pytest.raises(ValueError):
        configure_logging("loud", force=True)


@pytest.mark.asyncio
async def test_logged_task_failure_is_logged_and_untracked(caplog):
    caplog.set_level(logging.ERROR, logger="mezastar_helper")
    pending: set[asyncio.Task] = set()

    async def boom():
        raise RuntimeError("effect failed")

    task = create_logged_task(boom(), context="confirmation:Submit", pending=pending)
    assert task in pending

    await asyncio.gather(task, return_exceptions=True)
    await asyncio.sleep(0)

    assert pending == set()
    assert any("confirmation:Submit" in r.getMessage() for r in caplog.records)
