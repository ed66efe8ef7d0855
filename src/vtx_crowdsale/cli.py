from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import asdict
from datetime import datetime, timezone

from eth_account import Account

from .chain import Chain
from .config import Settings
from .migrations import build_params, deploy, verify_record
from .rawtx import raw_transaction
from .rpc import RpcClient
from .units import to_tokens
from .whitelist import load_whitelist


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _utc(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def cmd_plan(args: argparse.Namespace) -> int:
    settings = Settings.from_env(rpc_url_override=args.rpc_url)
    placeholder = "(deployer)"
    params = build_params(
        int(time.time()),
        wallet=settings.wallet or placeholder,
        founders_fund=settings.founders_fund or placeholder,
    )
    print(json.dumps(asdict(params), indent=2))
    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    settings = Settings.from_env(rpc_url_override=args.rpc_url)
    log = logging.getLogger("deploy")

    investors = load_whitelist(args.whitelist)
    log.info("Whitelist entries : %d", len(investors))

    chain = Chain()
    deployer = chain.accounts[0].address
    deployment = deploy(
        chain,
        deployer,
        wallet=settings.wallet,
        founders_fund=settings.founders_fund,
        whitelist=investors,
    )
    record = deployment.to_record()
    record["metadata"]["generated_at_utc"] = datetime.now(timezone.utc).isoformat()

    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(record, f, indent=2)

    params = deployment.params
    print("========================================")
    print(f"{params.token_name} ({params.token_symbol}) DEPLOYMENT")
    print("========================================")
    print(f"Token         : {deployment.token.address}")
    print(f"Crowdsale     : {deployment.crowdsale.address}")
    print(f"Refund vault  : {deployment.crowdsale.vault.address}")
    print(f"Wallet        : {params.wallet}")
    print("----------------------------------------")
    print(f"Opens         : {_utc(params.opening_time)}")
    print(f"Closes        : {_utc(params.closing_time)}")
    print(f"Founders lock : {_utc(params.release_time)}")
    print(f"Cap / goal    : {to_tokens(params.cap)} / {to_tokens(params.goal)} ETH")
    print("----------------------------------------")
    print(f"Wrote deployment: {args.out}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    with open(args.deployment, "r", encoding="utf-8") as f:
        record = json.load(f)
    result = verify_record(record)
    print("DEPLOYMENT VERIFIED")
    print(f"Crowdsale     : {result['crowdsale']}")
    print(f"Token         : {result['token']}")
    print(f"Opens         : {_utc(result['opening_time'])}")
    print(f"Closes        : {_utc(result['closing_time'])}")
    print(f"Founders lock : {_utc(result['release_time'])}")
    return 0


def cmd_send(args: argparse.Namespace) -> int:
    settings = Settings.from_env(rpc_url_override=args.rpc_url)
    private_key = settings.require_private_key()
    sender = Account.from_key(private_key).address

    rpc = RpcClient(settings.rpc_url, timeout_s=args.timeout)
    try:
        tx_hash = raw_transaction(rpc, sender, private_key, args.to, args.data, args.value)
    finally:
        rpc.close()

    print(f"From          : {sender}")
    print(f"To            : {args.to}")
    print(f"Tx hash       : {tx_hash}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vtx-crowdsale",
        description="VTX token sale deployment and transaction tool.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    plan = sub.add_parser("plan", help="Print the deployment parameters for a sale starting now.")
    plan.set_defaults(func=cmd_plan)

    d = sub.add_parser("deploy", help="Deploy on a local chain and write a deployment JSON.")
    d.add_argument(
        "--whitelist",
        default=None,
        help="File with investor addresses to whitelist, one per line.",
    )
    d.add_argument("--out", default="deployment.json", help="Deployment output JSON path.")
    d.set_defaults(func=cmd_deploy)

    v = sub.add_parser("verify", help="Re-derive and check a deployment JSON.")
    v.add_argument("--deployment", required=True, help="Path to deployment.json.")
    v.set_defaults(func=cmd_verify)

    s = sub.add_parser("send", help="Sign and broadcast a raw transaction.")
    s.add_argument("--to", required=True, help="Contract address.")
    s.add_argument("--data", default="", help="ABI-encoded call data (hex).")
    s.add_argument("--value", type=int, default=0, help="Value in wei.")
    s.set_defaults(func=cmd_send)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))
