from supertx.config import Settings


def test_mee_url_alias(monkeypatch):
    """Node URL should load from the legacy MEE_URL alias when present."""

    monkeypatch.delenv("MEE_NODE_URL", raising=False)
    monkeypatch.setenv("MEE_URL", "https://legacy.example/v1")

    settings = Settings()

    assert settings.mee_node_url == "https://legacy.example/v1"


def test_mee_node_url_direct_env(monkeypatch):
    """MEE_NODE_URL remains the primary source."""

    monkeypatch.setenv("MEE_NODE_URL", "https://primary.example/v1")
    monkeypatch.setenv("MEE_URL", "https://legacy.example/v1")

    settings = Settings()

    assert settings.mee_node_url == "https://primary.example/v1"


def test_polling_defaults(monkeypatch):
    monkeypatch.delenv("POLLING_TIMEOUT_SECONDS", raising=False)
    monkeypatch.delenv("POLLING_INTERVAL_MS", raising=False)

    settings = Settings()

    assert settings.polling_interval_ms == 1000
    assert settings.polling_timeout_seconds is None
    assert settings.receipt_confirmations == 2


def test_chain_rpc_urls_from_env(monkeypatch):
    monkeypatch.setenv("CHAIN_RPC_URLS", '{"8453": "https://base.example", "10": "https://op.example"}')

    settings = Settings()

    assert settings.chain_rpc_urls == {8453: "https://base.example", 10: "https://op.example"}
