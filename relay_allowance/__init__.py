"""
relay-allowance
Convenience exports for the token ledger, relay clients and the allowance scenario.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import HarnessConfig, NetworkSelection, load_config, select_network  # noqa: F401
from .errors import (  # noqa: F401
    ConfigError,
    InsufficientAllowance,
    InsufficientBalance,
    LedgerError,
    ProvisioningError,
    RelayAllowanceError,
    RpcError,
    TxError,
)

# Accounts
from .accounts import AccountId, Signer, normalize_address, to_checksum  # noqa: F401

# Ledger
from .ledger import Event, EventLog, TokenLedger  # noqa: F401

# RPC
from .rpc.http import RpcClient  # noqa: F401

# Token clients
from .erc20 import LocalTokenClient, Receipt, RelayTokenClient, TokenClient  # noqa: F401

# Provisioning & scenario
from .provisioning import LocalProvisioner, RelayProvisioner, TokenSpec  # noqa: F401
from .scenario import ScenarioReport, StepResult, run_allowance_scenario  # noqa: F401

__all__ = [
    "__version__",
    "HarnessConfig",
    "NetworkSelection",
    "load_config",
    "select_network",
    "ConfigError",
    "InsufficientAllowance",
    "InsufficientBalance",
    "LedgerError",
    "ProvisioningError",
    "RelayAllowanceError",
    "RpcError",
    "TxError",
    "AccountId",
    "Signer",
    "normalize_address",
    "to_checksum",
    "Event",
    "EventLog",
    "TokenLedger",
    "RpcClient",
    "LocalTokenClient",
    "Receipt",
    "RelayTokenClient",
    "TokenClient",
    "LocalProvisioner",
    "RelayProvisioner",
    "TokenSpec",
    "ScenarioReport",
    "StepResult",
    "run_allowance_scenario",
]
