"""
Protocol constants shared by the quote, signing and tracking layers.
"""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ENTRY_POINT_ADDRESS = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"
FORWARDER_ADDRESS = "0x000000Afe527A978Ecb761008Af475cfF04132a1"
MEE_VALIDATOR_ADDRESS = "0x00000000d12897DDAdC2044614A9677B191A2d95"

# Signature prefixes: the node dispatches verification on these bytes alone
SIMPLE_SIGNATURE_PREFIX = "0x177eee00"
ONCHAIN_SIGNATURE_PREFIX = "0x177eee01"
PERMIT_SIGNATURE_PREFIX = "0x177eee02"

# ERC-721 receiver selector, used as call data for bare native forwards
NATIVE_TRANSFER_MARKER = "0x150b7a02"

PERMIT_TYPEHASH = "0x6e71edae12b1b97f4d1f60370fef10105fa2faae0126114a169c64845d6126c9"

LARGE_DEFAULT_GAS_LIMIT = 5_000_000
DEFAULT_VERIFICATION_GAS_LIMIT = 150_000
FIRST_OP_VERIFICATION_GAS_LIMIT = 250_000
DEFAULT_CLEANUP_GAS_LIMIT = 300_000

# Seconds an operation stays valid after quoting; cleanups get the extended window
DEFAULT_EXECUTION_WINDOW_S = 180
CLEANUP_EXECUTION_WINDOW_S = 900

DEFAULT_QUOTE_PATH = "quote"
PERMIT_QUOTE_PATH = "quote-permit"

SPONSORSHIP_ACCOUNT_ADDRESS = "0x18eAc826f3dD77d065E75E285d3456B751AC80d5"
SPONSORSHIP_CHAIN_ID = 8453
SPONSORSHIP_TOKEN_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
SPONSORSHIP_TESTNET_CHAIN_ID = 84532
SPONSORSHIP_TESTNET_TOKEN_ADDRESS = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

TESTNET_CHAIN_IDS = frozenset({11155111, 84532, 11155420, 421614})

# Nonce keys: 3-byte timestamp seed || 1-byte validation mode || 20-byte validator
NONCE_KEY_TIMESTAMP_MODULUS = 16777215
