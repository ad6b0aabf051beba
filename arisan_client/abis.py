"""Contract surface consumed by the client: ABIs, deployed addresses and gas ceilings."""

LISK_SEPOLIA_RPC = "https://rpc.sepolia-api.lisk.com"
LISK_SEPOLIA_CHAIN_ID = 4202

USDT_ADDRESS = "0x952E20BED7b51195512Cfd31A30AC6C4bc7cb714"
FACTORY_ADDRESS = "0x6af78564BBC62f9f8D15925103969bFf71C06185"

DEFAULT_DECIMALS = 18

# Fixed gas ceilings per write call.
GAS_CREATE_GROUP = 2_000_000
GAS_APPROVE = 500_000
GAS_JOIN = 800_000
GAS_PICK_WINNER = 500_000
GAS_CLAIM = 250_000


def _fn(name, inputs=(), outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


def _event(name, inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": idx} for n, t, idx in inputs],
    }


PARTICIPANT_TUPLE = {
    "name": "",
    "type": "tuple[]",
    "components": [
        {"name": "walletAddress", "type": "address"},
        {"name": "hasPaid", "type": "bool"},
        {"name": "hasWon", "type": "bool"},
        {"name": "joinedAt", "type": "uint256"},
    ],
}

ARISAN_CREATED_EVENT = _event(
    "ArisanCreated",
    [
        ("arisanAddress", "address", True),
        ("creator", "address", True),
        ("name", "string", False),
        ("entryFee", "uint256", False),
    ],
)

JOINED_EVENT = _event(
    "Joined",
    [("participant", "address", True), ("amount", "uint256", False)],
)

WINNER_PICKED_EVENT = _event(
    "WinnerPicked",
    [
        ("winner", "address", True),
        ("amount", "uint256", False),
        ("timestamp", "uint256", False),
    ],
)

TRANSFER_EVENT = _event(
    "Transfer",
    [("from", "address", True), ("to", "address", True), ("value", "uint256", False)],
)

FACTORY_ABI = [
    _fn(
        "createArisan",
        [
            ("_name", "string"),
            ("_description", "string"),
            ("_entryFee", "uint256"),
            ("_maxParticipants", "uint256"),
        ],
        mutability="nonpayable",
    ),
    _fn("getDeployedArisans", outputs=[("", "address[]")]),
    ARISAN_CREATED_EVENT,
]

ERC20_ABI = [
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    _fn("balanceOf", [("account", "address")], [("", "uint256")]),
    _fn("decimals", outputs=[("", "uint8")]),
    _fn("symbol", outputs=[("", "string")]),
    TRANSFER_EVENT,
]

ARISAN_ABI = [
    _fn("join", mutability="nonpayable"),
    _fn("kocok", mutability="nonpayable"),
    dict(_fn("getParticipants"), outputs=[PARTICIPANT_TUPLE]),
    _fn("owner", outputs=[("", "address")]),
    _fn("name", outputs=[("", "string")]),
    _fn("description", outputs=[("", "string")]),
    _fn("entryFee", outputs=[("", "uint256")]),
    _fn("maxParticipants", outputs=[("", "uint256")]),
    _fn("participantAddresses", [("", "uint256")], [("", "address")]),
    _fn("pendingWithdrawals", [("", "address")], [("", "uint256")]),
    _fn("withdrawPrize", mutability="nonpayable"),
    JOINED_EVENT,
    WINNER_PICKED_EVENT,
]

KNOWN_EVENTS = [ARISAN_CREATED_EVENT, JOINED_EVENT, WINNER_PICKED_EVENT, TRANSFER_EVENT]
