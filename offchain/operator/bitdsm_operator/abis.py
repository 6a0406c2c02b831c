"""
Minimal ABIs for the contracts the operator talks to.

Used when no ABI file is found in the configured ABI directory.
"""

from typing import Any

DELEGATION_MANAGER_ABI = [
    {
        "inputs": [{"name": "operator", "type": "address"}],
        "name": "isOperator",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": [
                    {"name": "__deprecated_earningsReceiver", "type": "address"},
                    {"name": "delegationApprover", "type": "address"},
                    {"name": "stakerOptOutWindowBlocks", "type": "uint32"},
                ],
                "name": "registeringOperatorDetails",
                "type": "tuple",
            },
            {"name": "metadataURI", "type": "string"},
        ],
        "name": "registerAsOperator",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

AVS_DIRECTORY_ABI = [
    {
        "inputs": [
            {"name": "operator", "type": "address"},
            {"name": "avs", "type": "address"},
            {"name": "salt", "type": "bytes32"},
            {"name": "expiry", "type": "uint256"},
        ],
        "name": "calculateOperatorAVSRegistrationDigestHash",
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
        "type": "function",
    },
]

BITDSM_REGISTRY_ABI = [
    {
        "inputs": [{"name": "operator", "type": "address"}],
        "name": "operatorRegistered",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": [
                    {"name": "signature", "type": "bytes"},
                    {"name": "salt", "type": "bytes32"},
                    {"name": "expiry", "type": "uint256"},
                ],
                "name": "_operatorSignature",
                "type": "tuple",
            },
            {"name": "_signingKey", "type": "address"},
            {"name": "btcPublicKey", "type": "bytes"},
        ],
        "name": "registerOperatorWithSignature",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "deregisterOperator",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

BITDSM_SERVICE_MANAGER_ABI = [
    {
        "inputs": [
            {"name": "pod", "type": "address"},
            {"name": "signature", "type": "bytes"},
        ],
        "name": "confirmDeposit",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

BITCOIN_POD_MANAGER_ABI = [
    {
        "inputs": [
            {"name": "pod", "type": "address"},
            {"name": "transactionId", "type": "bytes32"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "verifyBitcoinDepositRequest",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "pod", "type": "address"},
            {"indexed": True, "name": "operator", "type": "address"},
            {
                "components": [
                    {"name": "transactionId", "type": "bytes32"},
                    {"name": "amount", "type": "uint256"},
                    {"name": "isPending", "type": "bool"},
                ],
                "indexed": False,
                "name": "bitcoinDepositRequest",
                "type": "tuple",
            },
        ],
        "name": "VerifyBitcoinDepositRequest",
        "type": "event",
    },
]

# ABI file name (without .json) -> bundled fallback
BUNDLED_ABIS: dict[str, list[dict[str, Any]]] = {
    "IDelegationManager": DELEGATION_MANAGER_ABI,
    "IAVSDirectory": AVS_DIRECTORY_ABI,
    "BitDSMRegistry": BITDSM_REGISTRY_ABI,
    "BitDSMServiceManager": BITDSM_SERVICE_MANAGER_ABI,
    "BitcoinPodManager": BITCOIN_POD_MANAGER_ABI,
}
