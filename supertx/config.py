import os

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy MEE_URL alias for the node endpoint."""

        super().model_post_init(__context)

        if not os.getenv("MEE_NODE_URL"):
            fallback = os.getenv("MEE_URL")
            if fallback:
                object.__setattr__(self, "mee_node_url", fallback)

    log_level: str = Field(default="INFO", description="Logging level")

    # Execution node
    mee_node_url: str = Field(
        default="https://network.biconomy.io/v1",
        description="Base URL of the execution node",
    )
    mee_api_key: str = Field(default="", description="API key sent as x-api-key")
    request_timeout_seconds: int = Field(default=30, description="HTTP request timeout")

    # Status polling
    polling_interval_ms: int = Field(
        default=1000,
        description="Delay between supertransaction status polls",
    )
    polling_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Upper bound for receipt polling (None polls until terminal)",
    )
    receipt_confirmations: int = Field(
        default=2,
        description="Confirmations required when fetching per-chain receipts",
    )
    onchain_trigger_confirmations: int = Field(
        default=2,
        description="Confirmations awaited for on-chain trigger transactions",
    )

    # Chains
    chain_rpc_urls: Dict[int, str] = Field(
        default_factory=dict,
        description="JSON-RPC endpoint per chain id",
    )
    chain_explorer_urls: Dict[int, str] = Field(
        default_factory=lambda: {
            1: "https://etherscan.io",
            10: "https://optimistic.etherscan.io",
            137: "https://polygonscan.com",
            8453: "https://basescan.org",
            42161: "https://arbiscan.io",
            84532: "https://sepolia.basescan.org",
            11155111: "https://sepolia.etherscan.io",
        },
        description="Block explorer base URL per chain id",
    )

    # Sponsorship
    sponsorship_enabled: bool = Field(
        default=False,
        description="Pay supertransaction fees from the sponsorship account",
    )
    sponsorship_url: str = Field(
        default="",
        description="Sponsorship service URL (defaults to the node URL)",
    )
    self_hosted_sponsorship: bool = Field(
        default=False,
        description="Forward quotes to the sponsorship service for co-signature",
    )

    # Explorers
    meescan_url: str = Field(
        default="https://meescan.biconomy.io",
        description="Supertransaction explorer",
    )
    jiffyscan_url: str = Field(
        default="https://v2.jiffyscan.xyz",
        description="User operation explorer",
    )

    # Bridging
    across_api_url: str = Field(
        default="https://app.across.to/api",
        description="Across API for mainnet bridging quotes",
    )
    across_testnet_api_url: str = Field(
        default="https://testnet.across.to/api",
        description="Across API for testnet bridging quotes",
    )


settings = Settings()
