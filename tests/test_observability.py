"""
Tests for observability — health checks and logging setup.
"""

import json
import logging

from click.testing import CliRunner

from asset_normalizer.adapters.mock import MockEncoder, MockProber
from asset_normalizer.core.models.media import FormatCatalog
from asset_normalizer.core.observability.health import (
    ComponentHealth,
    SystemHealth,
    check_catalog,
    check_encoder,
    check_prober,
    check_system_health,
)
from asset_normalizer.core.observability.logging_config import (
    ClippingFormatter,
    resolve_level,
    resolve_log_file,
    setup_logging,
)
from asset_normalizer.main import cli

# ── Health Check Tests ───────────────────────────────────────────────


class TestComponentHealth:
    def test_defaults(self):
        c = ComponentHealth(name="test")
        assert c.status == "unknown"

    def test_to_dict(self):
        d = ComponentHealth(name="test", status="healthy", message="ok").to_dict()
        assert d["name"] == "test"
        assert d["status"] == "healthy"


class TestSystemHealth:
    def test_all_healthy(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b", status="healthy"))
        assert h.status == "healthy"
        assert h.healthy

    def test_degraded_if_any_degraded(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b", status="degraded"))
        assert h.status == "degraded"

    def test_unhealthy_wins(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="degraded"))
        h.add(ComponentHealth(name="b", status="unhealthy"))
        assert h.status == "unhealthy"

    def test_get(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        assert h.get("a").status == "healthy"
        assert h.get("missing") is None


class TestChecks:
    def test_encoder_present(self):
        assert check_encoder(MockEncoder()).status == "healthy"

    def test_encoder_missing_is_unhealthy(self):
        result = check_encoder(MockEncoder(available=False))
        assert result.status == "unhealthy"
        assert "video processing disabled" in result.message

    def test_prober_missing_is_degraded(self):
        assert check_prober(MockProber(available=False)).status == "degraded"

    def test_catalog(self, catalog):
        result = check_catalog(catalog)
        assert result.status == "healthy"
        assert result.details["formats"] == ["square", "portrait", "story", "landscape"]

    def test_empty_catalog(self):
        assert check_catalog(FormatCatalog()).status == "unhealthy"

    def test_system(self, catalog):
        health = check_system_health(MockEncoder(), MockProber(available=False), catalog)
        assert health.status == "degraded"
        assert [c.name for c in health.components] == ["encoder", "prober", "catalog"]


class TestHealthCommand:
    def test_json(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["health", "--mock", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "healthy"
        assert len(data["components"]) == 3

    def test_pretty(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["health", "--mock"])
        assert result.exit_code == 0
        assert "HEALTHY" in result.output
        assert "encoder" in result.output


# ── Logging ──────────────────────────────────────────────────────────


class TestLogging:
    def test_resolve_precedence(self):
        assert resolve_level("DEBUG", "INFO", {"ANORM_LOG_LEVEL": "ERROR"}) == "DEBUG"
        assert resolve_level(None, "INFO", {"ANORM_LOG_LEVEL": "error"}) == "ERROR"
        assert resolve_level(None, "info", {}) == "INFO"
        assert resolve_level(None, None, {}) == "WARNING"

    def test_setup_levels(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert logging.getLogger("PIL").level == logging.WARNING

    def test_unknown_level_defaults_to_warning(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "anorm.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        logging.getLogger("asset_normalizer.test").debug("to file only")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "to file only" in log_file.read_text()
        setup_logging("WARNING")

    def test_resolve_log_file_env_beats_settings(self):
        assert resolve_log_file("a.log", "INFO", {}) == ("a.log", "INFO")
        assert resolve_log_file("a.log", "INFO", {"ANORM_LOG_FILE": "b.log"}) == ("b.log", "INFO")
        assert resolve_log_file(None, None, {"ANORM_LOG_FILE_LEVEL": "DEBUG"}) == (None, "DEBUG")

    def test_settings_log_file_used_by_cli(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        log_file = tmp_path / "normalizer.log"
        (tmp_path / "normalizer.yml").write_text(
            f"log_file: {log_file}\nlog_file_level: INFO\n"
        )
        result = CliRunner().invoke(cli, ["media", "formats"])
        assert result.exit_code == 0
        logging.getLogger("asset_normalizer.test").info("after setup")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "after setup" in log_file.read_text()
        setup_logging("WARNING")


class TestClippingFormatter:
    def _record(self, msg: str) -> logging.LogRecord:
        return logging.LogRecord("asset_normalizer.adapters", logging.ERROR, __file__, 1, msg, None, None)

    def test_short_message_untouched(self):
        text = "encode failed\nline 2"
        assert ClippingFormatter("%(message)s").format(self._record(text)) == text

    def test_long_diagnostic_clipped(self):
        stderr = "\n".join(f"frame {n}" for n in range(100))
        out = ClippingFormatter("%(message)s", max_lines=6).format(self._record(stderr))
        lines = out.splitlines()

        assert lines[:3] == ["frame 0", "frame 1", "frame 2"]
        assert lines[-3:] == ["frame 97", "frame 98", "frame 99"]
        assert "94 lines clipped" in lines[3]

    def test_console_clips_but_file_keeps_everything(self, tmp_path):
        log_file = tmp_path / "full.log"
        setup_logging("WARNING", log_file=str(log_file))
        stderr = "\n".join(f"line {n}" for n in range(50))
        logging.getLogger("asset_normalizer.test").warning("diagnostic:\n%s", stderr)
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "line 25" in log_file.read_text()
        console = logging.getLogger().handlers[0]
        assert isinstance(console.formatter, ClippingFormatter)
        setup_logging("WARNING")
