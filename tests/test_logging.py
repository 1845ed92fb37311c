import logging

from webwhisper.util.logging import configure_logging


class TestConfigureLogging:
    def setup_method(self) -> None:
        root = logging.getLogger()
        self._original_handlers = list(root.handlers)
        self._original_level = root.level

    def teardown_method(self) -> None:
        root = logging.getLogger()
        root.handlers = list(self._original_handlers)
        root.setLevel(self._original_level)

    def _added_handlers(self) -> list[logging.Handler]:
        root = logging.getLogger()
        return [h for h in root.handlers if h not in self._original_handlers]

    def test_json_output_default(self) -> None:
        configure_logging()

        added = self._added_handlers()
        assert len(added) == 1
        assert isinstance(added[0], logging.StreamHandler)

    def test_console_output(self) -> None:
        configure_logging(json_output=False)

        assert len(self._added_handlers()) == 1

    def test_reconfiguring_replaces_handler(self) -> None:
        configure_logging()
        configure_logging(json_output=False)

        assert len(self._added_handlers()) == 1

    def test_log_level_respected(self) -> None:
        configure_logging(log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_log_level_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("WEBWHISPER_LOG_LEVEL", "debug")
        configure_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(log_level="CHATTY")

        assert logging.getLogger().level == logging.INFO
