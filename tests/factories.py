"""
Test data factories shared across the suite.
"""

from typing import Any, Dict, List, Optional

from supertx.core.account import ChainDeployment, LocalSigner, MultichainAccount, Nexus7579Encoder

SIGNER_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ACCOUNT = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
USDC_BASE = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
USDC_OP = "0x0b2c639c533813f4aa9d7837caf62653d097ff85"
NODE_ADDRESS = "0x3333333333333333333333333333333333333333"
QUOTE_HASH = "0x" + "ab" * 32
TX_HASH = "0x" + "cd" * 32


class FakeReader:
    """In-memory AccountReader."""

    def __init__(
        self,
        nonce: int = 0,
        deployed: bool = True,
        init_code: Optional[str] = None,
        authorization: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.nonce = nonce
        self.deployed = deployed
        self.init_code = init_code
        self.authorization = authorization
        self.nonce_keys: List[int] = []

    async def get_nonce(self, key: int = 0) -> int:
        self.nonce_keys.append(key)
        return self.nonce

    async def is_deployed(self) -> bool:
        return self.deployed

    async def get_init_code(self) -> Optional[str]:
        return self.init_code

    async def get_delegation_authorization(self) -> Optional[Dict[str, Any]]:
        return self.authorization


def make_account(readers: Optional[Dict[int, FakeReader]] = None, rpc: Optional[Dict[int, Any]] = None) -> MultichainAccount:
    readers = readers or {8453: FakeReader(), 10: FakeReader()}
    rpc = rpc or {}
    encoder = Nexus7579Encoder()
    deployments = [
        ChainDeployment(chain_id=chain_id, address=ACCOUNT, reader=reader, encoder=encoder, rpc=rpc.get(chain_id))
        for chain_id, reader in readers.items()
    ]
    return MultichainAccount(LocalSigner(SIGNER_KEY), deployments)


def node_info_payload(arbitrary_tokens: bool = False, permit_enabled: bool = True) -> Dict[str, Any]:
    return {
        "version": "1.1.0",
        "node": NODE_ADDRESS,
        "supportedChains": [{"chainId": "8453", "name": "Base"}, {"chainId": "10", "name": "Optimism"}],
        "supportedGasTokens": [
            {
                "chainId": "8453",
                "paymentTokens": [
                    {
                        "name": "USD Coin",
                        "address": USDC_BASE,
                        "symbol": "USDC",
                        "decimals": 6,
                        "permitEnabled": permit_enabled,
                    }
                ],
                "isArbitraryPaymentTokensSupported": arbitrary_tokens,
            },
            {
                "chainId": "10",
                "paymentTokens": [
                    {"name": "USD Coin", "address": USDC_OP, "symbol": "USDC", "decimals": 6, "permitEnabled": False}
                ],
                "isArbitraryPaymentTokensSupported": arbitrary_tokens,
            },
        ],
        "supportedWalletProviders": [],
    }


def quote_payload(
    user_ops: int = 1,
    token_wei_amount: str = "25000",
    sponsored: Optional[bool] = None,
    chain_ids: Optional[List[str]] = None,
) -> Dict[str, Any]:
    chain_ids = chain_ids or ["8453"] * user_ops
    payment_info: Dict[str, Any] = {
        "sender": ACCOUNT,
        "token": USDC_BASE,
        "nonce": "7",
        "chainId": "8453",
        "tokenAmount": "0.025",
        "tokenWeiAmount": token_wei_amount,
        "tokenValue": "0.025",
    }
    if sponsored is not None:
        payment_info["sponsored"] = sponsored
    return {
        "hash": QUOTE_HASH,
        "node": NODE_ADDRESS,
        "commitment": "0x" + "00" * 32,
        "paymentInfo": payment_info,
        "userOps": [
            {
                "userOp": {
                    "sender": ACCOUNT,
                    "nonce": str(index),
                    "callData": "0x",
                    "callGasLimit": "50000",
                },
                "userOpHash": "0x" + f"{index:02x}" * 32,
                "chainId": chain_id,
            }
            for index, chain_id in enumerate(chain_ids)
        ],
    }
