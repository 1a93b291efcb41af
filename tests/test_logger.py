"""
Tests for utils.monitoring.logger module.
"""

import logging


class TestSafeAscii:
    def test_known_emojis_replaced(self):
        from utils.monitoring.logger import safe_ascii

        assert safe_ascii("🧠 Reduced 3 events") == "[BRAIN] Reduced 3 events"
        assert safe_ascii("✂️ Pruned") == "[PRUNE] Pruned"

    def test_plain_text_untouched(self):
        from utils.monitoring.logger import safe_ascii

        assert safe_ascii("nothing special") == "nothing special"


class TestFormatters:
    def _record(self, message="📍 Created location: Cellar", level=logging.INFO):
        return logging.LogRecord("Test", level, __file__, 1, message, None, None)

    def test_json_formatter(self):
        from utils.fast_json import json_loads
        from utils.monitoring.logger import JSONLogFormatter

        data = json_loads(JSONLogFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "Test"
        assert "Cellar" in data["message"]

    def test_smart_formatter(self):
        from utils.monitoring.logger import SmartLogFormatter

        text = SmartLogFormatter().format(self._record(level=logging.WARNING))

        assert "[WARNING]" in text
        assert "Cellar" in text


class TestSetupSmartLogging:
    def test_creates_log_files(self, tmp_path):
        from utils.monitoring.logger import setup_smart_logging

        root = logging.getLogger()
        saved = list(root.handlers)
        try:
            setup_smart_logging(json_logs=True, logs_dir=str(tmp_path))
            logging.getLogger("Test").error("❌ Something failed")
            for handler in root.handlers:
                handler.flush()

            assert (tmp_path / "memory_vault.log").exists()
            assert (tmp_path / "memory_vault_errors.log").exists()
            assert (tmp_path / "memory_vault_structured.jsonl").exists()
        finally:
            for handler in list(root.handlers):
                if handler not in saved:
                    root.removeHandler(handler)
                    handler.close()
            for handler in saved:
                if handler not in root.handlers:
                    root.addHandler(handler)
