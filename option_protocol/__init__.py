"""
option_protocol - Single-Position Option Contract on a Host Ledger

One contract instance writes one European-style option between a holder and a
liquidity pool, prices it with Black-Scholes against an injected oracle, and
settles every transition as one atomic batch of ledger transfers.

Usage:
    from option_protocol import (
        Ledger, OptionContract, StaticPriceOracle, MarketQuote, Coin, cash, asset,
    )

    ledger = Ledger("chain", verbose=False)
    ledger.register_unit(cash("USDC", "USD Coin"))
    ledger.register_unit(asset("ATOM", "Cosmos"))
    for wallet in ("alice", "pool"):
        ledger.register_wallet(wallet)

    oracle = StaticPriceOracle({"ATOM": MarketQuote(Decimal("8.01"), Decimal("1.0"))})
    contract = OptionContract(ledger, oracle)
    contract.create(owner="alice", strike=Coin(Decimal("8"), "USDC"),
                    expiration=1000, is_put=False, is_sell=False, quantity=10,
                    liquidity_pool="pool", settlement_currency="USDC",
                    collateral_currency="ATOM")
    contract.open_funding()
    ledger.advance_height(1000)
    contract.expire()
"""

# Core types
from .core import (
    LedgerView,
    Coin,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    ExecuteResult,
    LedgerError,
    UnitNotRegistered,
    WalletNotRegistered,
    OptionError,
    InvalidTerms,
    ExpiredTerms,
    Unauthorized,
    NotFound,
    InvalidPricingInput,
    TransferFailed,
    cash,
    asset,
    SYSTEM_WALLET,
    UNIT_TYPE_CASH,
    UNIT_TYPE_ASSET,
)

# Ledger
from .ledger import Ledger

# Black-Scholes pricing
from .black_scholes import (
    call, put, price,
    call_delta, put_delta,
    intrinsic,
    PRICE_PLACES,
    PRICE_TOLERANCE,
)

# Market data
from .pricing_source import (
    MarketQuote,
    MissingQuote,
    PriceOracle,
    RiskFreeRateSource,
    ConstantRateSource,
    StaticPriceOracle,
    HeightSeriesPriceOracle,
)

# Option record
from .option import (
    OptionRecord,
    create_option_record,
    is_in_the_money,
    get_option_intrinsic_value,
    get_option_moneyness,
)

from .store import OptionStore

from .access import OpenFundingPolicy

from .config import OptionConfig, CONTRACT_NAME, CONTRACT_VERSION

# Settlement engine
from .settlement import (
    compute_open_funding,
    compute_early_sale,
    compute_expiry_settlement,
    describe_transfers,
    net_flows,
)

# Lifecycle controller
from .contract import (
    OptionContract,
    OptionState,
    OptionQuote,
    ContractInfo,
    Ack,
)

from .logging_config import setup_logging, get_logger

__version__ = CONTRACT_VERSION

__all__ = [
    # Core
    'LedgerView', 'Coin', 'Move', 'Transaction', 'PendingTransaction',
    'TransactionOrigin', 'OriginType', 'build_transaction',
    'Unit', 'ExecuteResult', 'cash', 'asset',
    'SYSTEM_WALLET', 'UNIT_TYPE_CASH', 'UNIT_TYPE_ASSET',
    # Errors
    'LedgerError',
    'UnitNotRegistered', 'WalletNotRegistered',
    'OptionError', 'InvalidTerms', 'ExpiredTerms', 'Unauthorized', 'NotFound',
    'InvalidPricingInput', 'TransferFailed',
    # Ledger
    'Ledger',
    # Pricing
    'call', 'put', 'price', 'call_delta', 'put_delta', 'intrinsic',
    'PRICE_PLACES', 'PRICE_TOLERANCE',
    'MarketQuote', 'MissingQuote', 'PriceOracle', 'RiskFreeRateSource',
    'ConstantRateSource', 'StaticPriceOracle', 'HeightSeriesPriceOracle',
    # Option
    'OptionRecord', 'create_option_record', 'is_in_the_money',
    'get_option_intrinsic_value', 'get_option_moneyness',
    'OptionStore', 'OpenFundingPolicy',
    'OptionConfig', 'CONTRACT_NAME', 'CONTRACT_VERSION',
    # Settlement
    'compute_open_funding', 'compute_early_sale', 'compute_expiry_settlement',
    'describe_transfers', 'net_flows',
    # Contract
    'OptionContract', 'OptionState', 'OptionQuote', 'ContractInfo', 'Ack',
    # Logging
    'setup_logging', 'get_logger',
]
