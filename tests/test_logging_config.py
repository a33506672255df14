import logging

from app.utils.logging_config import configure_logging


def test_configure_logging_writes_to_log_dir(tmp_path):
    root_logger = logging.getLogger()
    handlers_before = list(root_logger.handlers)
    level_before = root_logger.level

    try:
        configure_logging(log_dir=str(tmp_path / "logs"))
        logging.getLogger("app.services.category_store").error("Database error creating category")
        logging.getLogger("app.services.category_service").info("Category created successfully: 42")
        for handler in root_logger.handlers:
            handler.flush()
    finally:
        for handler in root_logger.handlers[:]:
            if handler not in handlers_before:
                root_logger.removeHandler(handler)
                handler.close()
        root_logger.setLevel(level_before)

    error_log = (tmp_path / "logs" / "error.log").read_text()
    app_log = (tmp_path / "logs" / "app.log").read_text()
    assert "Database error creating category" in error_log
    assert "Category created successfully" not in error_log
    assert "Category created successfully: 42" in app_log
