"""Contract registry and on-chain event catalogue.

Addresses are selected by ``CHAIN_ID``. Individual addresses can be overridden
through the ``*_ADDRESS`` settings in :mod:`signalfriend.config`.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from eth_utils import encode_hex, keccak, to_checksum_address

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

NETWORK_NAMES: Dict[int, str] = {
    97: "BNB Testnet",
    56: "BNB Mainnet",
}

CONTRACT_ADDRESSES: Dict[int, Dict[str, str]] = {
    # BNB Testnet
    97: {
        "signalFriendMarket": "0x5133397a4B9463c5270beBa05b22301e6dD184ca",
        "predictorAccessPass": "0x10EB1A238Db78b763ec97e326b800D7A7AcA3fC4",
        "signalKeyNFT": "0xfb26Df6101e1a52f9477f52F54b91b99fb016aed",
        "usdt": "0xF87d17a5ca95F3f992f82Baabf4eBC5301A178a5",  # MockUSDT
    },
    # BNB Mainnet
    56: {
        "signalFriendMarket": "0xAebec2Cd5c2dB4c0875de215515B3060a7a652FB",
        "predictorAccessPass": "0x198Cd0549A0Dba09Aa3aB88e0B51CEb8dd335d07",
        "signalKeyNFT": "0x2A5F920133e584773Ef4Ac16260c2F954824491f",
        "usdt": "0x55d398326f99059fF775485246999027B3197955",
    },
}

_OVERRIDE_KEYS = {
    "signalFriendMarket": "SIGNALFRIEND_MARKET_ADDRESS",
    "predictorAccessPass": "PREDICTOR_ACCESS_PASS_ADDRESS",
    "signalKeyNFT": "SIGNAL_KEY_NFT_ADDRESS",
    "usdt": "MOCK_USDT_ADDRESS",
}

# Canonical ABI signatures of the events the marketplace contracts emit.
EVENT_SIGNATURES: Dict[str, str] = {
    "PredictorJoined": "PredictorJoined(address,address,uint256,bool)",
    "SignalPurchased": "SignalPurchased(address,address,uint256,bytes32,uint256,uint256)",
    "PredictorBlacklisted": "PredictorBlacklisted(address,bool)",
    "PredictorNFTMinted": "PredictorNFTMinted(address,uint256,bool)",
}


def event_topic(signature: str) -> str:
    """Return the lowercase ``0x`` keccak256 topic hash for an event signature."""
    return encode_hex(keccak(text=signature)).lower()


EVENT_TOPICS: Dict[str, str] = {name: event_topic(sig) for name, sig in EVENT_SIGNATURES.items()}
TOPIC_TO_EVENT: Dict[str, str] = {topic: name for name, topic in EVENT_TOPICS.items()}


def get_network_name(chain_id: int) -> str:
    return NETWORK_NAMES.get(chain_id, f"Unknown ({chain_id})")


def get_contract_addresses(chain_id: int, cfg: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    """
    Get checksummed contract addresses for a chain.

    Args:
        chain_id: EVM chain id (97 or 56)
        cfg: Optional configuration mapping with ``*_ADDRESS`` overrides

    Returns:
        Mapping of contract name to checksummed address

    Raises:
        ValueError: If the chain is unsupported or a mainnet address is unset
    """
    if chain_id not in CONTRACT_ADDRESSES:
        supported = ", ".join(str(cid) for cid in CONTRACT_ADDRESSES)
        raise ValueError(f"Unsupported chain ID: {chain_id}. Supported: {supported}")

    addresses = dict(CONTRACT_ADDRESSES[chain_id])
    for name, key in _OVERRIDE_KEYS.items():
        override = (cfg or {}).get(key)
        if override:
            addresses[name] = override

    if chain_id == 56:
        unset = [name for name, addr in addresses.items() if addr.lower() == ZERO_ADDRESS]
        if unset:
            raise ValueError(f"Mainnet contract addresses not configured: {', '.join(unset)}")

    return {name: to_checksum_address(addr) for name, addr in addresses.items()}
