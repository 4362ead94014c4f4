import logging

import pytest

from common.core_utils import SymbolFormatter, resolve_log_level, setup_logging


@pytest.mark.parametrize(
    "value, expected",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("bogus", logging.INFO), (logging.ERROR, logging.ERROR)],
)
def test_resolve_log_level(value, expected):
    assert resolve_log_level(value) == expected


def test_symbol_formatter_adds_level_symbol():
    formatter = SymbolFormatter("%(symbol)s %(message)s", symbols={"error": "E!"})
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", None, None)

    assert formatter.format(record) == "E! boom"


def test_setup_logging_writes_prefixed_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "stack-setup.log"

    setup_logging(log_level="DEBUG", log_file=str(log_file), log_to_console=False, log_prefix="[TEST]")
    logging.getLogger("tests.core").debug("hello")
    for handler in restore_root_logger.handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert content.startswith("[TEST] ")
    assert "hello" in content
    assert restore_root_logger.level == logging.DEBUG


def test_setup_logging_sends_errors_to_stderr(capsys, restore_root_logger):
    setup_logging(log_level="INFO")
    logger = logging.getLogger("tests.core")

    logger.info("installing nginx")
    logger.error("apt-get failed (rc 100)")

    captured = capsys.readouterr()
    assert "installing nginx" in captured.out
    assert "rc 100" not in captured.out
    assert "apt-get failed (rc 100)" in captured.err
