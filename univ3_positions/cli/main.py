"""Main CLI entry point"""

import sys
import json
import logging
import argparse
from decimal import Decimal
from pathlib import Path

from ..contracts.client import Web3LedgerClient
from ..core.config import Config
from ..core.exceptions import InvalidInputError, PositionManagerError, UnknownError
from ..core.types import to_decimal
from ..operations.liquidity import (
    LiquidityManager,
    OpenPositionParams,
    RebalanceParams,
    WithdrawOptions,
)
from ..operations.positions import PositionQuery, format_position_status
from ..operations.validation import validate_address
from ..utils.log import setup_logging


logger = logging.getLogger("univ3_positions.cli")


def get_results_dir():
    """Get results directory, create if needed"""
    results_dir = Path.cwd() / "results"
    results_dir.mkdir(exist_ok=True)
    return results_dir


def save_result(filename, data):
    """Save result to JSON file in results directory"""
    filepath = get_results_dir() / filename
    with open(filepath, "w") as f:
        json.dump(data, f, indent=2, default=str)
    return filepath


def _load_config(args):
    return Config.load(network=args.network)


def _make_client(config, read_only=False):
    return Web3LedgerClient(config, require_signer=not read_only)


def _percent_to_fraction(value):
    """--slippage is given in percent (0.5 = 0.5%)"""
    if value is None:
        return None
    return to_decimal(value, "slippage") / 100


def cmd_open(args, config):
    """Open a new position over a price range"""
    base, quote = config.base_token, config.quote_token
    if args.invert:
        base, quote = quote, base

    params = OpenPositionParams(
        amount=args.amount,
        price_lower=args.price_lower,
        price_upper=args.price_upper,
        base_token=base,
        quote_token=quote,
        fee_tier=args.fee,
        pool_address=args.pool,
        slippage_tolerance=_percent_to_fraction(args.slippage),
    )
    print(f"Opening position: {args.price_lower} - {args.price_upper} {quote.symbol} per {base.symbol}")

    manager = LiquidityManager(config, _make_client(config))
    result = manager.open_position(params)

    print(f"\nSuccess! Position ID: {result.token_id}")
    print(f"Ticks: {result.tick_lower} to {result.tick_upper}")
    print(f"Liquidity: {result.liquidity}")
    print(f"Mint tx: {result.mint_receipt.tx_hash}")

    filepath = save_result(f"open_position_{result.token_id}.json", result.to_dict())
    print(f"Saved to {filepath}", file=sys.stderr)


def cmd_inspect(args, config):
    """Inspect a position"""
    query = PositionQuery(config, _make_client(config, read_only=True))
    snapshot = query.inspect(args.token_id)

    if args.json:
        print(json.dumps(snapshot.to_dict(), indent=2))
    else:
        print(format_position_status(snapshot, config.base_token, config.quote_token))

    filepath = save_result(f"position_{args.token_id}.json", snapshot.to_dict())
    print(f"Saved to {filepath}", file=sys.stderr)


def cmd_rebalance(args, config):
    """Move a position to a new price range"""
    params = RebalanceParams(
        new_price_lower=args.price_lower,
        new_price_upper=args.price_upper,
        slippage_tolerance=_percent_to_fraction(args.slippage),
    )
    print(f"Rebalancing position {args.token_id} to {args.price_lower} - {args.price_upper}")

    manager = LiquidityManager(config, _make_client(config))
    result = manager.rebalance(args.token_id, params)

    print(f"\nSuccess! New position ID: {result.new_token_id}")
    print(f"Ticks: {result.new_tick_lower} to {result.new_tick_upper}")
    print(f"Decrease tx: {result.decrease_receipt.tx_hash}")
    print(f"Collect tx: {result.collect_receipt.tx_hash}")
    print(f"Mint tx: {result.mint_receipt.tx_hash}")

    filepath = save_result(f"rebalance_{args.token_id}.json", result.to_dict())
    print(f"Saved to {filepath}", file=sys.stderr)


def cmd_withdraw(args, config):
    """Withdraw liquidity (and fees) from a position"""
    options = WithdrawOptions(percentage=args.percentage, collect_fees=args.collect_fees)
    print(f"Withdrawing {args.percentage}% liquidity from position {args.token_id}")

    manager = LiquidityManager(config, _make_client(config))
    result = manager.withdraw(args.token_id, options)

    print(f"\nSuccess!")
    print(f"Liquidity removed: {result.liquidity_removed}")
    if result.decrease_receipt:
        print(f"Decrease tx: {result.decrease_receipt.tx_hash}")
    if result.collect_receipt:
        print(f"Collect tx: {result.collect_receipt.tx_hash}")

    filepath = save_result(f"withdraw_{args.token_id}.json", result.to_dict())
    print(f"Saved to {filepath}", file=sys.stderr)


def cmd_check_allowance(args, config):
    """Show the registry's allowance for a configured token"""
    tokens = {t.symbol.upper(): t for t in (config.base_token, config.quote_token)}
    token = tokens.get(args.token.upper())
    if token is None:
        token_address = validate_address(args.token, "token address")
        decimals = None
    else:
        token_address = token.address
        decimals = token.decimals

    client = _make_client(config, read_only=True)
    owner = client.account_address
    if not owner:
        raise InvalidInputError("No wallet address configured (set PUBLIC_KEY or PRIVATE_KEY)")
    spender = validate_address(args.spender, "spender") if args.spender else client.registry_address

    allowance = client.allowance(token_address, owner, spender)
    result = {"token": token_address, "owner": owner, "spender": spender, "allowance": allowance}
    if decimals is not None:
        result["allowance_human"] = str(Decimal(allowance).scaleb(-decimals))

    print(json.dumps(result, indent=2))
    filepath = save_result(f"allowance_{token_address[:10]}.json", result)
    print(f"Saved to {filepath}", file=sys.stderr)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="univ3-positions",
        description="Manage a Uniswap V3 liquidity position",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""examples:
  univ3-positions open 1.5 1750 1850                 # Open WETH/USDC position
  univ3-positions inspect 1234                       # Show position status
  univ3-positions rebalance 1234 1800 1900           # Move to a new range
  univ3-positions withdraw 1234 --percentage 50      # Remove half the liquidity
  univ3-positions check-allowance USDC

configuration:
  RPC_URL      Set in .env file
  wallet       Set PUBLIC_KEY and PRIVATE_KEY in wallet.env
  network      UNIV3_NETWORK or --network (sepolia, mainnet)
  overrides    config/univ3.json, gas_config.json
""",
    )
    parser.add_argument("--network", help="Network name (default: $UNIV3_NETWORK or sepolia)")
    parser.add_argument("--log-level", default="INFO", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    open_parser = subparsers.add_parser("open", aliases=["add"], help="Open a position over a price range")
    open_parser.add_argument("amount", help="Position size (liquidity, ether units)")
    open_parser.add_argument("price_lower", help="Lower price (quote per base)")
    open_parser.add_argument("price_upper", help="Upper price (quote per base)")
    open_parser.add_argument("--fee", help="Fee tier: LOW, MEDIUM, HIGH or 500, 3000, 10000")
    open_parser.add_argument("--slippage", help="Slippage tolerance in percent (default from config)")
    open_parser.add_argument("--pool", help="Pool address (default from config)")
    open_parser.add_argument("--invert", action="store_true", help="Prices are base per quote")
    open_parser.set_defaults(func=cmd_open)

    inspect_parser = subparsers.add_parser("inspect", aliases=["monitor"], help="Show position status")
    inspect_parser.add_argument("token_id", type=int, help="Position NFT token ID")
    inspect_parser.add_argument("--json", action="store_true", help="Print JSON instead of a summary")
    inspect_parser.set_defaults(func=cmd_inspect)

    rebalance_parser = subparsers.add_parser("rebalance", aliases=["adjust"], help="Move a position to a new range")
    rebalance_parser.add_argument("token_id", type=int, help="Position NFT token ID")
    rebalance_parser.add_argument("price_lower", help="New lower price")
    rebalance_parser.add_argument("price_upper", help="New upper price")
    rebalance_parser.add_argument("--slippage", help="Slippage tolerance in percent")
    rebalance_parser.set_defaults(func=cmd_rebalance)

    withdraw_parser = subparsers.add_parser("withdraw", help="Withdraw liquidity from a position")
    withdraw_parser.add_argument("token_id", type=int, help="Position NFT token ID")
    withdraw_parser.add_argument("--percentage", default="100", help="Percentage of liquidity (1-100)")
    withdraw_parser.add_argument("--no-collect-fees", dest="collect_fees", action="store_false",
                                 help="Leave withdrawn tokens and fees owed in the registry")
    withdraw_parser.set_defaults(func=cmd_withdraw)

    allowance_parser = subparsers.add_parser("check-allowance", help="Show token allowance for the registry")
    allowance_parser.add_argument("token", help="Token symbol (from config) or address")
    allowance_parser.add_argument("--spender", help="Spender address (default: position registry)")
    allowance_parser.set_defaults(func=cmd_check_allowance)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level, args.log_file)

    try:
        config = _load_config(args)
        args.func(args, config)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except PositionManagerError as e:
        logger.error("%s [%s] params=%s", e, e.kind, e.params)
        print(f"Error [{e.kind}]: {e.message}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        error = UnknownError(f"Unknown error in {args.command}: {e}", operation=args.command, cause=e)
        logger.error("%s [%s]", error, error.kind)
        print(f"Error [{error.kind}]: {error.message}", file=sys.stderr)
        sys.exit(1)
    return 0


if __name__ == "__main__":
    sys.exit(main())
