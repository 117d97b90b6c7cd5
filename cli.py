#!/usr/bin/env python3
"""Command line for issuing Bitoku operations against a Solana cluster."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from bitoku_client import BitokuClient, BitokuClientError, RequestType, SubmissionResult, SubmissionStatus
from bitoku_client.config import settings
from bitoku_client.logging_config import setup_logging

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNKNOWN = 2


def print_result(result: SubmissionResult) -> int:
    """Pretty print a submission outcome and map it to an exit code"""
    if result.status == SubmissionStatus.CONFIRMED:
        print(f"✅ Transaction confirmed: {result.signature}")
        if result.slot is not None:
            print(f"   Slot: {result.slot}")
        return EXIT_OK

    if result.status == SubmissionStatus.FAILED:
        print(f"❌ Transaction failed: {result.signature}")
        print(f"   Reason: {result.error}")
        if result.rejection is not None and result.rejection.program_error is not None:
            print(f"   Program error: {result.rejection.program_error.name}")
        return EXIT_FAILED

    print(f"⏳ Outcome unknown, transaction may still land: {result.signature}")
    return EXIT_UNKNOWN


async def cli_status(client: BitokuClient) -> int:
    """Show the derived accounts and what the program currently stores for this caller"""
    print(f"Caller:     {client.caller}")
    print(f"Program:    {client.program_id}")
    print(f"Bookkeeper: {client.bookkeeper_address().address}")
    print(f"Request:    {client.request_address().address}")

    bookkeeper = await client.fetch_bookkeeper()
    if bookkeeper is None:
        print("\nBookkeeper account not initialized")
    else:
        print(f"\nRegistered client ids: {bookkeeper.registered_clients or 'none'}")
        print(f"Next client id: {bookkeeper.next_id}")

    record = await client.fetch_request()
    if record is None:
        print("Caller is not registered")
    else:
        request = record.request_type.name if record.request_type is not None else "unknown"
        print(f"Last request: {request} name={record.name.decode('utf-8', 'replace')!r} file_id={record.file_id}")
    return EXIT_OK


def _request_type(value: str) -> RequestType:
    try:
        return RequestType[value.upper().replace("-", "_")]
    except KeyError:
        raise argparse.ArgumentTypeError(
            f"unknown request type {value!r} (choose from {', '.join(t.name.lower() for t in RequestType)})"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bitoku agent program CLI")
    parser.add_argument("--rpc-url", help=f"RPC endpoint (default: {settings.rpc_url})")
    parser.add_argument("--keypair", help=f"Keypair file (default: {settings.keypair_path})")
    parser.add_argument("--log-level", help="Log level (default: from settings)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init", help="Create the program's bookkeeper account")
    subparsers.add_parser("register", help="Register this wallet as a client")

    remove_parser = subparsers.add_parser("remove", help="Remove this wallet's client registration")
    remove_parser.add_argument("--client-id", type=int, default=0, help="Client id (default: 0)")

    send_parser = subparsers.add_parser("send", help="Send a storage request")
    send_parser.add_argument("request_type", type=_request_type, help="create_bucket, create_file, write_file, ...")
    send_parser.add_argument("name", help="Bucket or file name (at most 128 bytes)")
    send_parser.add_argument("--file-id", type=int, default=0)
    send_parser.add_argument("--position", type=int, default=0)
    send_parser.add_argument("--data", default="", help="Payload (at most 512 bytes)")
    send_parser.add_argument("--client-id", type=int, default=0)

    subparsers.add_parser("status", help="Show derived accounts and on-chain state")

    return parser


async def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    overrides = {}
    if args.rpc_url:
        overrides["rpc_url"] = args.rpc_url
    if args.keypair:
        overrides["keypair_path"] = Path(args.keypair).expanduser()
    config = settings.model_copy(update=overrides) if overrides else settings
    setup_logging(args.log_level, config=config)

    try:
        async with BitokuClient.from_settings(config) as client:
            if args.command == "status":
                return await cli_status(client)
            if args.command == "init":
                result = await client.init_bookkeeper()
            elif args.command == "register":
                result = await client.register_client()
            elif args.command == "remove":
                result = await client.remove_client(args.client_id)
            else:
                result = await client.send_request(
                    args.request_type,
                    args.name,
                    file_id=args.file_id,
                    position=args.position,
                    data=args.data,
                    client_id=args.client_id,
                )
    except BitokuClientError as e:
        print(f"❌ Error: {e}")
        return EXIT_FAILED

    return print_result(result)


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
