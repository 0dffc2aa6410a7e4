"""
option_example.py - Step-by-Step Option Contract Example

Demonstrates the complete lifecycle of a long ATOM call against a pool:
1. Setup: Create ledger, register currencies, fund wallets
2. Creation: Instantiate the contract with the option terms
3. Open Funding: Pool pays the premium, holder posts collateral
4. Monitoring: Quote fair value, delta and moneyness as the market moves
5. Settlement: Expire on intrinsic value once the expiration height is reached

Run this file directly:
    python option_example.py
"""

from decimal import Decimal

from option_protocol import (
    Ledger, Coin, cash, asset,
    OptionContract, HeightSeriesPriceOracle, MarketQuote,
    NotFound, Unauthorized,
    setup_logging,
)


def print_balances(ledger: Ledger, wallets=("alice", "pool")) -> None:
    for wallet in wallets:
        print(f"  {wallet:<6} USDC={ledger.get_balance(wallet, 'USDC'):>14}  "
              f"ATOM={ledger.get_balance(wallet, 'ATOM'):>14}")


def main():
    setup_logging(log_level="INFO")

    print("=" * 70)
    print("ATOM CALL OPTION - COMPLETE LIFECYCLE EXAMPLE")
    print("=" * 70)

    # =========================================================================
    # STEP 1: SETUP
    # =========================================================================
    print("\nSTEP 1: SETUP")
    ledger = Ledger(name="cosmos", verbose=True)
    ledger.register_unit(cash("USDC", "USD Coin", decimal_places=6))
    ledger.register_unit(asset("ATOM", "Cosmos Hub", decimal_places=6))
    ledger.register_wallet("alice")
    ledger.register_wallet("pool")

    ledger.issue("alice", "USDC", Decimal("1000"))
    ledger.issue("alice", "ATOM", Decimal("100"))
    ledger.issue("pool", "USDC", Decimal("100000"))
    ledger.issue("pool", "ATOM", Decimal("10000"))
    print_balances(ledger)

    oracle = HeightSeriesPriceOracle({
        "ATOM": [
            (0, MarketQuote(Decimal("8.01"), Decimal("1.00"))),
            (600, MarketQuote(Decimal("8.60"), Decimal("0.90"))),
            (1000, MarketQuote(Decimal("9.10"), Decimal("0.90"))),
        ],
    })

    # =========================================================================
    # STEP 2: CREATION
    # =========================================================================
    print("\nSTEP 2: CREATION")
    contract = OptionContract(ledger, oracle)
    ack = contract.create(
        owner="alice",
        strike=Coin(Decimal("8"), "USDC"),
        expiration=1000,
        is_put=False,
        is_sell=False,
        quantity=10,
        liquidity_pool="pool",
        settlement_currency="USDC",
        collateral_currency="ATOM",
    )
    print(f"  {ack.attributes}")
    print(f"  {contract.get_terms()}")
    print(f"  {contract.contract_info()}")

    # =========================================================================
    # STEP 3: OPEN FUNDING
    # =========================================================================
    print("\nSTEP 3: OPEN FUNDING")
    ack = contract.open_funding()
    print(f"  fair value per unit: {ack.attribute('fair_value')}")
    print_balances(ledger)

    # =========================================================================
    # STEP 4: MONITORING
    # =========================================================================
    print("\nSTEP 4: MONITORING")
    for height in (300, 600, 999):
        ledger.advance_height(height)
        quote = contract.get_quote()
        print(f"  h={height:<5} spot={quote.spot} fair={quote.fair_value} "
              f"delta={quote.delta} {quote.moneyness} next={quote.eligible_transition}")

    try:
        contract.expire()
    except Unauthorized as e:
        print(f"  expire() before expiration rejected: {e}")

    # =========================================================================
    # STEP 5: SETTLEMENT
    # =========================================================================
    print("\nSTEP 5: SETTLEMENT")
    ledger.advance_height(1000)
    ack = contract.expire()
    print(f"  settled at spot {ack.attribute('spot')}")
    print_balances(ledger)

    try:
        contract.get_terms()
    except NotFound as e:
        print(f"  after settlement: {e}")

    print(f"\n  double entry: {ledger.verify_double_entry()['valid']}")


if __name__ == "__main__":
    main()
