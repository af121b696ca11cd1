import logging

from loguru import logger

from simpledo.logging_config import setup_logging


def test_server_records_are_forwarded():
    setup_logging(level="DEBUG", log_dir="")
    messages = []
    sink_id = logger.add(messages.append, format="{level} {message}")
    try:
        logging.getLogger("uvicorn.error").warning("port 8000 busy")
    finally:
        logger.remove(sink_id)

    assert any("WARNING [uvicorn.error] port 8000 busy" in m for m in messages)


def test_log_dir_gets_a_file(tmp_path):
    setup_logging(level="INFO", log_dir=str(tmp_path))
    try:
        logger.info("stored to-do list")
    finally:
        setup_logging(level="INFO", log_dir="")

    assert "stored to-do list" in (tmp_path / "simpledo.log").read_text()
