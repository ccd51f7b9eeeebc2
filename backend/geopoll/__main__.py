"""GeoPoll CLI entry point."""

import argparse
import logging
import sys
import time
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from geopoll import __version__
from geopoll.config import Settings, get_settings
from geopoll.exceptions import GeoPollError
from geopoll.services import (
    PollDraft,
    build_portfolio,
    count_active_polls,
    create_poll,
    finalize_poll,
    get_poll,
    list_polls,
    place_stake,
    poll_status,
    preview_poll,
    preview_poll_outcomes,
    register_user,
    settle_poll,
)
from geopoll.settlement import (
    Poll,
    SettlementResult,
    compute_preview_statistics,
    compute_settlement,
    format_amount,
    preview_outcomes,
    to_octas,
)
from geopoll.storage import LedgerStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# GeoPoll Configuration
# Secrets (LOGFIRE_TOKEN) belong in .env, not here.

polls:
  min_stake_octas: 1
  max_title_length: 200
  allow_early_finalize: false

units:
  decimals: 8
  symbol: APT
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from geopoll.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _fmt(octas: int, settings: Settings) -> str:
    return format_amount(octas, settings.units.decimals, settings.units.symbol)


def _load_snapshot(path: Path) -> Poll:
    """Load a poll snapshot from YAML or JSON (JSON parses as YAML)."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return Poll.model_validate(raw)


def _print_settlement(
    result: SettlementResult,
    labels: tuple[str, str],
    settings: Settings,
) -> None:
    print(f"Winning Option: {result.winning_option} ({labels[result.winning_option - 1]})")
    print(f"Total Pool: {_fmt(result.total_pool, settings)}")
    print(
        f"  {labels[0]}: {_fmt(result.total_option1_stake, settings)} "
        f"({result.option1_stake_count} stakes)"
    )
    print(
        f"  {labels[1]}: {_fmt(result.total_option2_stake, settings)} "
        f"({result.option2_stake_count} stakes)"
    )
    print(f"Winning Stake: {_fmt(result.total_winning_stake, settings)}")
    print(f"Winners: {result.winners_count}")

    if result.has_winners:
        for winner in result.rewards_per_winner:
            print(
                f"  • {winner.voter}: staked {_fmt(winner.stake, settings)} "
                f"-> reward {_fmt(winner.reward, settings)}"
            )
    else:
        print("  (None) - creator retains the pool")

    print(f"Retained: {_fmt(result.retained, settings)}\n")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory, configuration, and empty ledger."""
    settings = get_settings()
    data_dir = settings.data_dir

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        store = LedgerStore.from_settings(settings)
        if not store.path.exists():
            store.save(store.load())
            logger.info(f"Created empty ledger: {store.path}")
        else:
            logger.info(f"Ledger already exists: {store.path}")

        print(f"\n✓ Data directory initialized at {data_dir}\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== GeoPoll Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}")
        print(f"Ledger: {settings.ledger_path}\n")

        print("Polls:")
        print(f"  Min Stake: {_fmt(settings.polls.min_stake_octas, settings)}")
        print(f"  Max Title Length: {settings.polls.max_title_length}")
        print(f"  Allow Early Finalize: {settings.polls.allow_early_finalize}\n")

        print("Units:")
        print(f"  Symbol: {settings.units.symbol}")
        print(f"  Decimals: {settings.units.decimals}\n")

        print("API Keys:")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1


def cmd_settle(args: argparse.Namespace) -> int:
    """Compute the final settlement of a snapshot file or a stored poll."""
    settings = get_settings()

    try:
        if args.file:
            poll = _load_snapshot(Path(args.file))
            result = compute_settlement(poll)
            labels = poll.option_labels
            print(f"\n=== Settlement: {args.file} ===\n")
        else:
            store = LedgerStore.from_settings(settings)
            result = settle_poll(store, args.creator, args.index)
            labels = get_poll(store, args.creator, args.index).option_labels
            print(f"\n=== Settlement: {args.creator}#{args.index} ===\n")

        _print_settlement(result, labels, settings)
        return 0

    except (GeoPollError, ValidationError, OSError, yaml.YAMLError) as e:
        logger.error(f"Settlement failed: {e}")
        print(f"\n❌ Settlement failed: {e}\n")
        return 1


def cmd_preview(args: argparse.Namespace) -> int:
    """Preview projected payouts for one or both candidate outcomes."""
    settings = get_settings()

    try:
        if args.file:
            poll = _load_snapshot(Path(args.file))
            labels = poll.option_labels
            if args.winner:
                results = {args.winner: compute_preview_statistics(poll.stakes, args.winner)}
            else:
                results = preview_outcomes(poll.stakes)
        else:
            store = LedgerStore.from_settings(settings)
            labels = get_poll(store, args.creator, args.index).option_labels
            if args.winner:
                results = {
                    args.winner: preview_poll(store, args.creator, args.index, args.winner)
                }
            else:
                results = preview_poll_outcomes(store, args.creator, args.index)

        print("\n=== Settlement Preview ===\n")
        for result in results.values():
            _print_settlement(result, labels, settings)
        return 0

    except (GeoPollError, ValidationError, OSError, yaml.YAMLError) as e:
        logger.error(f"Preview failed: {e}")
        print(f"\n❌ Preview failed: {e}\n")
        return 1


def cmd_create_poll(args: argparse.Namespace) -> int:
    """Open a new poll."""
    settings = get_settings()
    store = LedgerStore.from_settings(settings)
    now = int(time.time())

    try:
        draft = PollDraft(
            title=args.title,
            option1=args.option1,
            option2=args.option2,
            latitude=args.lat,
            longitude=args.lon,
            poll_time=now,
            expiry_time=now + int(args.duration_hours * 3600),
            creator=args.creator,
            transaction_hash=args.tx_hash,
        )
        poll = create_poll(store, draft, settings)

        print(f"\n✓ Created poll {poll.creator}#{poll.index}: {poll.title}")
        print(f"  Options: {poll.option1} / {poll.option2}")
        print(f"  Expires: {poll.expiry_time}\n")
        return 0

    except (GeoPollError, ValidationError) as e:
        logger.error(f"Failed to create poll: {e}")
        print(f"\n❌ Failed to create poll: {e}\n")
        return 1


def cmd_stake(args: argparse.Namespace) -> int:
    """Stake on an open poll. Amount is in whole coins."""
    settings = get_settings()
    store = LedgerStore.from_settings(settings)

    try:
        amount = to_octas(args.amount, settings.units.decimals)
        record = place_stake(
            store,
            creator=args.creator,
            index=args.index,
            voter=args.voter,
            option=args.option,
            amount=amount,
            transaction_hash=args.tx_hash,
            settings=settings,
        )

        print(
            f"\n✓ {record.voter} staked {_fmt(record.amount, settings)} "
            f"on option {record.option} of {args.creator}#{args.index}\n"
        )
        return 0

    except (GeoPollError, ValueError) as e:
        logger.error(f"Stake failed: {e}")
        print(f"\n❌ Stake failed: {e}\n")
        return 1


def cmd_finalize(args: argparse.Namespace) -> int:
    """Declare the winning option of an expired poll."""
    settings = get_settings()
    store = LedgerStore.from_settings(settings)

    try:
        poll = finalize_poll(
            store,
            creator=args.creator,
            index=args.index,
            winning_option=args.winner,
            caller=args.caller,
            transaction_hash=args.tx_hash,
            settings=settings,
        )
        print(f"\n✓ Finalized {poll.creator}#{poll.index}: option {poll.winning_option}\n")

        result = settle_poll(store, poll.creator, poll.index)
        _print_settlement(result, poll.option_labels, settings)
        return 0

    except GeoPollError as e:
        logger.error(f"Finalize failed: {e}")
        print(f"\n❌ Finalize failed: {e}\n")
        return 1


def cmd_polls(args: argparse.Namespace) -> int:
    """List stored polls."""
    settings = get_settings()
    store = LedgerStore.from_settings(settings)
    now = int(time.time())

    polls = list_polls(store, args.creator)
    print(f"\n=== Polls ({count_active_polls(store, now)} active) ===\n")

    if not polls:
        print("  (None)\n")
        return 0

    for poll in polls:
        status = poll_status(poll, now)
        print(f"  {poll.creator}#{poll.index} [{status.value}] {poll.title}")
        print(
            f"      {poll.option1}: {_fmt(poll.total_option1_stake, settings)} | "
            f"{poll.option2}: {_fmt(poll.total_option2_stake, settings)}"
        )
    print()
    return 0


def cmd_portfolio(args: argparse.Namespace) -> int:
    """Show hosted polls and stakes for an address."""
    settings = get_settings()
    store = LedgerStore.from_settings(settings)

    try:
        portfolio = build_portfolio(store, args.address)
    except GeoPollError as e:
        logger.error(f"Portfolio failed: {e}")
        print(f"\n❌ Portfolio failed: {e}\n")
        return 1

    print(f"\n=== Portfolio: {portfolio.address} ===\n")

    print(f"Hosted Polls: {len(portfolio.hosted)}")
    for hosted in portfolio.hosted:
        print(
            f"  {hosted.poll.index}. [{hosted.status.value}] {hosted.poll.title} - "
            f"pool {_fmt(hosted.total_pool, settings)}, {hosted.total_stakes} stakes"
        )
        for winner in hosted.winners:
            print(f"      • {winner.voter}: {_fmt(winner.reward, settings)}")
    print()

    print(f"Participated: {len(portfolio.participated)}")
    for entry in portfolio.participated:
        outcome = "won" if entry.won else entry.status.value
        print(
            f"  {entry.poll.creator}#{entry.poll.index} {entry.poll.title} - "
            f"staked {_fmt(entry.stake.amount, settings)} on option {entry.stake.option} "
            f"[{outcome}] reward {_fmt(entry.reward, settings)}"
        )
    print(f"\nTotal Staked: {_fmt(portfolio.total_staked, settings)}")
    print(f"Total Rewards: {_fmt(portfolio.total_rewards, settings)}\n")
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    """Register a username for a wallet address."""
    store = LedgerStore.from_settings()

    try:
        profile = register_user(store, args.address, args.username)
        print(f"\n✓ Registered {profile.username} for {profile.wallet_address}\n")
        return 0

    except GeoPollError as e:
        logger.error(f"Registration failed: {e}")
        print(f"\n❌ Registration failed: {e}\n")
        return 1


def _add_poll_source(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="Poll snapshot file (YAML or JSON)")
    source.add_argument("--creator", help="Creator address of a stored poll")
    parser.add_argument("--index", type=int, default=0, help="Poll index for --creator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GeoPoll: location-gated prediction polls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"GeoPoll {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory, configuration, and ledger",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_settle = subparsers.add_parser(
        "settle",
        help="Compute the settlement of a finalized poll",
    )
    _add_poll_source(parser_settle)
    parser_settle.set_defaults(func=cmd_settle)

    parser_preview = subparsers.add_parser(
        "preview",
        help="Preview payouts for each candidate winning option",
    )
    _add_poll_source(parser_preview)
    parser_preview.add_argument(
        "--winner",
        type=int,
        choices=[1, 2],
        help="Preview only this winning option",
    )
    parser_preview.set_defaults(func=cmd_preview)

    parser_create = subparsers.add_parser(
        "create-poll",
        help="Open a new poll",
    )
    parser_create.add_argument("--creator", required=True)
    parser_create.add_argument("--title", required=True)
    parser_create.add_argument("--option1", required=True)
    parser_create.add_argument("--option2", required=True)
    parser_create.add_argument("--lat", type=float, required=True)
    parser_create.add_argument("--lon", type=float, required=True)
    parser_create.add_argument(
        "--duration-hours",
        type=float,
        default=24.0,
        help="Hours until the poll expires (default: 24)",
    )
    parser_create.add_argument("--tx-hash", required=True)
    parser_create.set_defaults(func=cmd_create_poll)

    parser_stake = subparsers.add_parser(
        "stake",
        help="Stake on an open poll",
    )
    parser_stake.add_argument("--creator", required=True)
    parser_stake.add_argument("--index", type=int, required=True)
    parser_stake.add_argument("--voter", required=True)
    parser_stake.add_argument("--option", type=int, choices=[1, 2], required=True)
    parser_stake.add_argument("--amount", required=True, help="Amount in whole coins")
    parser_stake.add_argument("--tx-hash", default="")
    parser_stake.set_defaults(func=cmd_stake)

    parser_finalize = subparsers.add_parser(
        "finalize",
        help="Declare the winning option of an expired poll",
    )
    parser_finalize.add_argument("--creator", required=True)
    parser_finalize.add_argument("--index", type=int, required=True)
    parser_finalize.add_argument("--winner", type=int, choices=[1, 2], required=True)
    parser_finalize.add_argument("--caller", required=True, help="Address finalizing the poll")
    parser_finalize.add_argument("--tx-hash", default="")
    parser_finalize.set_defaults(func=cmd_finalize)

    parser_polls = subparsers.add_parser(
        "polls",
        help="List stored polls",
    )
    parser_polls.add_argument("--creator", help="Only polls created by this address")
    parser_polls.set_defaults(func=cmd_polls)

    parser_portfolio = subparsers.add_parser(
        "portfolio",
        help="Show hosted polls and stakes for an address",
    )
    parser_portfolio.add_argument("--address", required=True)
    parser_portfolio.set_defaults(func=cmd_portfolio)

    parser_register = subparsers.add_parser(
        "register",
        help="Register a username for a wallet address",
    )
    parser_register.add_argument("--address", required=True)
    parser_register.add_argument("--username", required=True)
    parser_register.set_defaults(func=cmd_register)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    _init_logfire()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
