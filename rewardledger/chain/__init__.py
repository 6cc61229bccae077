"""Blockchain collaborators: JSON-RPC access, wallet links and payment checks."""

from .identity import NeynarWalletResolver, StaticWalletResolver, WalletResolver
from .rpc import ChainClient, JsonRpcClient, RpcRejected, RpcUnavailable
from .verifier import PurchaseVerifier, VerificationFailure, VerificationResult

__all__ = [
    "NeynarWalletResolver",
    "StaticWalletResolver",
    "WalletResolver",
    "ChainClient",
    "JsonRpcClient",
    "RpcRejected",
    "RpcUnavailable",
    "PurchaseVerifier",
    "VerificationFailure",
    "VerificationResult",
]
