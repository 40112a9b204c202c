import logging

from canopy.core.config import settings
from canopy.core.logging_config import current_tenant, setup_logging


def test_file_log_carries_tenant(tmp_path):
    setup_logging("INFO", str(tmp_path))
    try:
        token = current_tenant.set("green-leaf")
        try:
            logging.getLogger("canopy.test").info("stock adjusted")
        finally:
            current_tenant.reset(token)
        logging.getLogger("canopy.test").error("outside request")

        lines = (tmp_path / "canopy.log").read_text(encoding="utf-8").splitlines()
        assert any("| green-leaf |" in line and "stock adjusted" in line for line in lines)
        assert any("| - |" in line and "outside request" in line for line in lines)

        errors = (tmp_path / "error.log").read_text(encoding="utf-8")
        assert "outside request" in errors
        assert "stock adjusted" not in errors
        assert "\033[" not in "\n".join(lines)
    finally:
        setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
