"""Top-level API tests."""

from __future__ import annotations

import logging

import pytest

import porthole
from porthole.config import Config, DriverMode
from porthole.drivers import SimpleDriver
from porthole.logging_setup import LOG_FORMAT, configure_logging
from porthole.runtime.channel import IS_WINDOWS


@pytest.fixture
def restore_driver():
    previous = porthole.get_driver()
    yield
    porthole.reinit(previous)


class TestDriverRegistry:
    """get_driver / reinit."""

    def test_get_driver_is_cached(self, restore_driver):
        assert porthole.get_driver() is porthole.get_driver()

    def test_reinit_replaces_driver(self, restore_driver):
        driver = SimpleDriver()
        assert porthole.reinit(driver) is driver
        assert porthole.get_driver() is driver

    @pytest.mark.asyncio
    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX-specific test")
    async def test_module_level_calls(self, restore_driver):
        porthole.reinit(SimpleDriver(term_timeout=0.5, kill_timeout=0.3))

        result = await porthole.exec("echo", ["hi"])
        assert result == porthole.Result(0, "hi\n", None)

        result = await porthole.exec_shell("echo shell")
        assert result.out == "shell\n"

        handle = await porthole.spawn_shell("sleep 30")
        await handle.stop()
        assert (await handle.await_result()).status is None

    @pytest.mark.asyncio
    async def test_invalid_options_surface(self, restore_driver):
        porthole.reinit(SimpleDriver())
        with pytest.raises(porthole.InvalidOptions):
            await porthole.spawn_shell("true", result="sometimes")

    def test_errors_share_a_base(self):
        for error in (
            porthole.CommandNotFound,
            porthole.InvalidOptions,
            porthole.ProtocolError,
            porthole.ChannelClosedError,
            porthole.ProcessNotRunning,
        ):
            assert issubclass(error, porthole.PortholeError)


class TestLogging:
    """configure_logging."""

    def test_stderr_handler_by_default(self):
        handlers = configure_logging(Config(driver=DriverMode.SIMPLE))
        try:
            assert len(handlers) == 1
            assert isinstance(handlers[0], logging.StreamHandler)
            assert handlers[0].formatter._fmt == LOG_FORMAT
            assert logging.getLogger("porthole").level == logging.INFO
        finally:
            for handler in handlers:
                logging.getLogger().removeHandler(handler)
            logging.getLogger("porthole").setLevel(logging.NOTSET)

    def test_debug_file(self, tmp_path):
        log_file = tmp_path / "debug.log"
        config = Config(log_debug=True, log_file=str(log_file))
        handlers = configure_logging(config)
        try:
            assert isinstance(handlers[0], logging.FileHandler)
            assert logging.getLogger("porthole").level == logging.DEBUG
        finally:
            for handler in handlers:
                logging.getLogger().removeHandler(handler)
                handler.close()
            logging.getLogger("porthole").setLevel(logging.NOTSET)
