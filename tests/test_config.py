import logging

import pytest

from synapse.config.settings import Settings
from synapse.core.errors import FunctionError
from synapse.core.logging_config import log_step


def test_require_lists_missing_settings():
    s = Settings(stripe_secret_key=None, openai_api_key="sk-test")

    s.require("openai_api_key")
    with pytest.raises(RuntimeError, match="STRIPE_SECRET_KEY"):
        s.require("stripe_secret_key", "openai_api_key")


def test_cors_origins_list():
    s = Settings(cors_origins="https://app.example.com, https://admin.example.com,")

    assert s.get_cors_origins_list() == ["https://app.example.com", "https://admin.example.com"]


def test_cleanup_disabled_by_default(monkeypatch):
    monkeypatch.delenv("ALLOW_DEBUG_CLEANUP", raising=False)

    assert Settings(_env_file=None).allow_debug_cleanup is False


def test_function_error_body():
    assert FunctionError("Invalid email", 400).to_dict() == {"error": "Invalid email"}
    assert FunctionError("Failed", details="boom").to_dict() == {"error": "Failed", "details": "boom"}


def test_log_step_format(caplog):
    logger = logging.getLogger("synapse.test")
    with caplog.at_level(logging.INFO, logger="synapse.test"):
        log_step(logger, "CREATE-CHECKOUT", "Price ID received", priceId="price_1")
        log_step(logger, "CREATE-CHECKOUT", "Function started")

    assert caplog.messages == [
        "[CREATE-CHECKOUT] Price ID received - priceId=price_1",
        "[CREATE-CHECKOUT] Function started",
    ]
