#!/usr/bin/env python3
"""
Command line client for the leasing contract

Usage:
    lease-client connect
    lease-client create-lease ASSET_ID DURATION PRICE [--yes]
    lease-client lease-status LEASE_ID
    lease-client asset ASSET_ID
    lease-client asset-stats
    lease-client my-leases
    lease-client fund
    lease-client balances [PUBLIC_KEY]

Configuration is read from the environment or a dotenv file (--env-file),
see .env.example. WALLET_SECRET holds the key of the local wallet.
"""

import sys
import argparse
from typing import Any, Optional, Sequence, Tuple

from .common import NETWORK_PASSPHRASES, Settings, balances, ensure_funded, load_settings
from .errors import LeaseClientError
from .lease_api import LeaseAPI
from .wallet import KeypairWallet, WalletBridge, WalletSession


def parse_value(raw: str) -> Any:
    """Command line arguments that look like integers are passed as integers"""
    if raw.lstrip("-").isdigit():
        return int(raw)
    return raw


def ask(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def build_clients(settings: Settings, confirm=None) -> Tuple[WalletBridge, LeaseAPI]:
    provider = None
    if settings.wallet_secret:
        passphrases = {**NETWORK_PASSPHRASES, settings.network: settings.network_passphrase}
        provider = KeypairWallet(settings.wallet_secret, confirm=confirm, passphrases=passphrases)
    bridge = WalletBridge(provider, notify=print)
    return bridge, LeaseAPI.from_settings(settings)


def _connect(bridge: WalletBridge) -> Optional[WalletSession]:
    session = bridge.connect()
    if session is not None:
        print(f"Connected: {session.public_key}")
    return session


def cmd_connect(args, settings, bridge, api) -> int:
    return 0 if _connect(bridge) else 1


def cmd_create_lease(args, settings, bridge, api) -> int:
    session = _connect(bridge)
    if session is None:
        return 1
    submission = api.create_lease(
        bridge,
        session,
        parse_value(args.asset_id),
        parse_value(args.duration),
        parse_value(args.price),
    )
    print("Lease created!")
    print(f"  hash:   {submission.tx_hash}")
    print(f"  status: {submission.status.value}")
    return 0


def _print_record(record) -> None:
    for key in sorted(record):
        print(f"  {key}: {record[key]}")


def cmd_lease_status(args, settings, bridge, api) -> int:
    session = _connect(bridge)
    if session is None:
        return 1
    lease = api.get_lease_status(args.lease_id, session.public_key)
    if lease is None:
        print(f"No lease with ID {args.lease_id}")
        return 1
    _print_record(lease)
    return 0


def cmd_asset(args, settings, bridge, api) -> int:
    session = _connect(bridge)
    if session is None:
        return 1
    asset = api.get_asset(args.asset_id, session.public_key)
    if asset is None:
        print(f"No asset with ID {args.asset_id}")
        return 1
    _print_record(asset)
    return 0


def cmd_asset_stats(args, settings, bridge, api) -> int:
    session = _connect(bridge)
    if session is None:
        return 1
    _print_record(api.get_asset_stats(session.public_key))
    return 0


def cmd_my_leases(args, settings, bridge, api) -> int:
    session = _connect(bridge)
    if session is None:
        return 1
    lease_ids = api.get_lessee_leases(session.public_key)
    print(f"Active leases: {', '.join(str(i) for i in lease_ids) or 'none'}")
    return 0


def cmd_fund(args, settings, bridge, api) -> int:
    session = _connect(bridge)
    if session is None:
        return 1
    if ensure_funded(session.public_key, settings.friendbot_url):
        print(f"[OK] Account {session.public_key[:8]}... funded successfully")
    else:
        print(f"[OK] Account {session.public_key[:8]}... already funded")
    return 0


def cmd_balances(args, settings, bridge, api) -> int:
    public_key = args.public_key
    if public_key is None:
        session = _connect(bridge)
        if session is None:
            return 1
        public_key = session.public_key
    print(f"{public_key}")
    for code, amount in balances(public_key, settings.horizon_url).items():
        print(f"  {code}: {amount}")
    return 0


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lease-client", description="Leasing contract client")
    parser.add_argument("--env-file", help="dotenv file with the client configuration")
    parser.add_argument("--yes", "-y", action="store_true", help="sign without asking for confirmation")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("connect", help="connect the wallet and show its address")
    p.set_defaults(func=cmd_connect)

    p = sub.add_parser("create-lease", help="submit a create_lease transaction")
    p.add_argument("asset_id")
    p.add_argument("duration")
    p.add_argument("price")
    p.set_defaults(func=cmd_create_lease)

    p = sub.add_parser("lease-status", help="show a lease record")
    p.add_argument("lease_id", type=int)
    p.set_defaults(func=cmd_lease_status)

    p = sub.add_parser("asset", help="show an asset record")
    p.add_argument("asset_id", type=int)
    p.set_defaults(func=cmd_asset)

    p = sub.add_parser("asset-stats", help="show contract-wide lease statistics")
    p.set_defaults(func=cmd_asset_stats)

    p = sub.add_parser("my-leases", help="list the active leases of the wallet account")
    p.set_defaults(func=cmd_my_leases)

    p = sub.add_parser("fund", help="fund the wallet account from friendbot (testnet)")
    p.set_defaults(func=cmd_fund)

    p = sub.add_parser("balances", help="show account balances")
    p.add_argument("public_key", nargs="?")
    p.set_defaults(func=cmd_balances)

    return parser


def main(argv: Sequence[str] = None) -> int:
    args = make_parser().parse_args(argv)
    try:
        settings = load_settings(args.env_file)
        bridge, api = build_clients(settings, confirm=None if args.yes else ask)
        return args.func(args, settings, bridge, api)
    except LeaseClientError as e:
        print(f"[ERROR] {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
