import logging

from univ3_positions.utils.log import ROOT_LOGGER, format_event, log_event, setup_logging


class TestFormatEvent:
    def test_details_in_order(self):
        assert format_event("Transaction sent", operation="mint", tx_hash="0x1") == (
            "Transaction sent | operation=mint tx_hash=0x1"
        )

    def test_none_dropped(self):
        assert format_event("Pool state", tick=5, price=None) == "Pool state | tick=5"
        assert format_event("Done") == "Done"


class TestSetupLogging:
    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "run.log"
        logger = setup_logging("debug", str(log_file))
        try:
            log_event(logging.getLogger(f"{ROOT_LOGGER}.test"), "Position opened", token_id=3)
            for handler in logger.handlers:
                handler.flush()
            text = log_file.read_text()
            assert "INFO univ3_positions.test: Position opened | token_id=3" in text
            assert logger.level == logging.DEBUG
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_replaces_handlers(self):
        logger = setup_logging()
        setup_logging("WARNING")
        try:
            assert len(logger.handlers) == 1
            assert logger.level == logging.WARNING
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
