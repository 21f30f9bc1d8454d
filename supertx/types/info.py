from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SupportedChain(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    chain_id: int = Field(alias="chainId", description="Chain id")
    name: str = Field(default="", description="Chain name")


class PaymentToken(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(default="", description="Token name")
    address: str = Field(description="Token address")
    symbol: str = Field(default="", description="Token symbol")
    decimals: int = Field(default=18, description="Token decimals")
    permit_enabled: bool = Field(default=False, alias="permitEnabled", description="Token supports ERC-2612 permit")


class GasTokens(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    chain_id: int = Field(alias="chainId", description="Chain id")
    payment_tokens: List[PaymentToken] = Field(default_factory=list, alias="paymentTokens")
    is_arbitrary_payment_tokens_supported: bool = Field(
        default=False,
        alias="isArbitraryPaymentTokensSupported",
        description="Node accepts tokens outside the listed set",
    )


class NodeInfo(BaseModel):
    """Payload of GET info."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str = Field(default="", description="Node version")
    node: str = Field(default="", description="Node address")
    supported_chains: List[SupportedChain] = Field(default_factory=list, alias="supportedChains")
    supported_gas_tokens: List[GasTokens] = Field(default_factory=list, alias="supportedGasTokens")
    supported_wallet_providers: List[Dict[str, Any]] = Field(default_factory=list, alias="supportedWalletProviders")

    def supports_chain(self, chain_id: int) -> bool:
        return any(chain.chain_id == chain_id for chain in self.supported_chains)

    def gas_tokens_on(self, chain_id: int) -> Optional[GasTokens]:
        for gas_tokens in self.supported_gas_tokens:
            if gas_tokens.chain_id == chain_id:
                return gas_tokens
        return None
