import logging

import pytest

from record_linkage.core.errors import ConfigurationError
from record_linkage.core.log import LogManager


def test_attach_and_detach_restore_the_logger() -> None:
    manager = LogManager("record_linkage.test_attach")
    logger = manager.logger
    before = list(logger.handlers)

    attached = manager.attach("trace")

    assert attached is logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == len(before) + 1

    manager.detach()

    assert logger.handlers == before
    assert logger.level == logging.NOTSET


def test_file_profile_writes_log_file(tmp_path) -> None:
    path = tmp_path / "run.log"

    with LogManager("record_linkage.test_file", str(path)) as logger:
        manager_logger = logger
    # the context manager attaches the default profile, which has no file
    assert not path.exists()
    assert manager_logger.handlers == []

    manager = LogManager("record_linkage.test_file", str(path))
    logger = manager.attach("info_file")
    logger.info("blocking done")
    logger.debug("not written")
    manager.detach()

    content = path.read_text()
    assert " - INFO - blocking done" in content
    assert "not written" not in content


def test_unknown_profile_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        LogManager().attach("verbose")
