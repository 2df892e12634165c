"""
Command-line interface for a local securejournal vault.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path

from .chain.evidence import EvidenceReport, decode_seed, verify_evidence
from .core.errors import VaultError
from .core.settings import Settings
from .vault import WIPE_CONFIRMATION, Vault


def _read_passphrase(args: argparse.Namespace, *, confirm: bool = False) -> str:
    if args.passphrase_env:
        value = os.getenv(args.passphrase_env)
        if value is None:
            raise SystemExit(f"environment variable {args.passphrase_env} is not set")
        return value
    passphrase = getpass.getpass("Passphrase: ")
    if confirm and getpass.getpass("Confirm passphrase: ") != passphrase:
        raise SystemExit("passphrases do not match")
    return passphrase


def _public_key_hex(text: str) -> bytes:
    try:
        key = bytes.fromhex(text)
    except ValueError:
        raise argparse.ArgumentTypeError("must be hex") from None
    if len(key) != 32:
        raise argparse.ArgumentTypeError("must be a 32-byte Ed25519 key")
    return key


def _build_vault(args: argparse.Namespace) -> Vault:
    settings = Settings()
    if args.dir:
        settings.storage.directory = args.dir
    return Vault(settings=settings)


def _print_report(
    report: EvidenceReport, *, output_format: str, verbose: bool, quiet: bool
) -> None:
    if output_format == "json":
        print(json.dumps(asdict(report), indent=2, default=str))
        return

    if not quiet:
        status = "OK" if report.valid else "FAIL"
        print(f"[{status}] {report.file_path} ({report.records_checked} records)")
    if verbose or not report.valid:
        for err in report.errors:
            print(f"- {err.error_type} seq={err.seq} msg={err.message}")
        for warning in report.warnings:
            print(f"! {warning}")


async def _run_unlocked(args: argparse.Namespace) -> int:
    vault = _build_vault(args)
    await vault.unlock(_read_passphrase(args))
    async with vault:
        if args.command == "add":
            text = sys.stdin.read() if args.text == "-" else args.text
            entry = await vault.add_entry(text)
            print(entry.id)
        elif args.command == "view":
            print(await vault.view_entry(args.entry_id))
        elif args.command == "check":
            report = await vault.verify_integrity()
            print(report.summary())
            for entry_id in report.failed_ids:
                print(f"- integrity failure: {entry_id}")
            return 0 if report.all_ok else 1
        elif args.command == "biometric":
            await vault.set_biometric(args.state == "on")
            print(f"biometric gate {args.state}")
    return 0


async def _run_chain(args: argparse.Namespace) -> int:
    vault = _build_vault(args)
    if args.chain_command == "verify":
        result = await vault.verify_chain()
        if args.output_format == "json":
            print(json.dumps(result.to_dict(), indent=2))
        else:
            status = "OK" if result.ok else f"BREAKS: {result.breaks}"
            print(f"[{status}] head={result.head or '-'}")
            for check in result.details:
                if not check.ok:
                    print(
                        f"- seq={check.seq} prevMatches={check.prev_matches} "
                        f"blockMatches={check.block_matches}"
                    )
        return 0 if result.ok else 1
    if args.chain_command == "head":
        print(await vault.head_fingerprint() or "")
        return 0
    if args.chain_command == "export":
        seed = decode_seed(os.getenv(args.signing_key_env)) if args.signing_key_env else None
        export = await vault.export_evidence(
            args.directory, base_name=args.name, signing_seed=seed
        )
        print(export.jsonl_path)
        print(export.manifest_path)
        if export.signature_path:
            print(export.signature_path)
        return 0
    return 2


async def _run(args: argparse.Namespace) -> int:
    if args.command == "verify-export":
        report = await verify_evidence(
            Path(args.path),
            Path(args.manifest) if args.manifest else None,
            Path(args.signature) if args.signature else None,
            verify_key=args.verify_key,
        )
        _print_report(
            report,
            output_format=args.output_format,
            verbose=args.verbose,
            quiet=args.quiet,
        )
        return 0 if report.valid else 1

    if args.command == "init":
        vault = _build_vault(args)
        async with vault:
            await vault.create(_read_passphrase(args, confirm=True))
        print("vault created")
        return 0

    if args.command == "list":
        vault = _build_vault(args)
        for entry in await vault.list_entries():
            print(f"{entry.id}  {entry.timestamp}")
        return 0

    if args.command == "chain":
        return await _run_chain(args)

    if args.command == "wipe":
        vault = _build_vault(args)
        report = await vault.panic_wipe(args.confirm)
        print(f"wiped {report.entries_overwritten} entries in {report.passes} passes")
        return 0

    return await _run_unlocked(args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="securejournal")
    parser.add_argument("--dir", help="vault storage directory")
    parser.add_argument(
        "--passphrase-env", help="read the passphrase from this environment variable"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init", help="Create a new vault")
    add = sub.add_parser("add", help="Add an entry ('-' reads stdin)")
    add.add_argument("text")
    sub.add_parser("list", help="List entry ids")
    view = sub.add_parser("view", help="Decrypt and print an entry")
    view.add_argument("entry_id")
    sub.add_parser("check", help="Verify HMACs of all entries")
    bio = sub.add_parser("biometric", help="Toggle the biometric unlock gate")
    bio.add_argument("state", choices=["on", "off"])

    chain = sub.add_parser("chain", help="Audit chain operations")
    chain_sub = chain.add_subparsers(dest="chain_command")
    cv = chain_sub.add_parser("verify", help="Verify the audit chain")
    cv.add_argument(
        "--format", dest="output_format", choices=["text", "json"], default="text"
    )
    chain_sub.add_parser("head", help="Print the chain head fingerprint")
    ce = chain_sub.add_parser("export", help="Export JSONL evidence and manifest")
    ce.add_argument("directory", nargs="?")
    ce.add_argument("--name")
    ce.add_argument(
        "--signing-key-env", help="environment variable holding an Ed25519 seed"
    )

    v = sub.add_parser("verify-export", help="Verify exported evidence offline")
    v.add_argument("path")
    v.add_argument("--manifest")
    v.add_argument("--signature")
    v.add_argument(
        "--verify-key", type=_public_key_hex, help="Ed25519 public key (hex)"
    )
    v.add_argument(
        "--format", dest="output_format", choices=["text", "json"], default="text"
    )
    v.add_argument("--verbose", action="store_true")
    v.add_argument("--quiet", action="store_true")

    wipe = sub.add_parser("wipe", help="Irreversibly destroy all vault data")
    wipe.add_argument(
        "--confirm", required=True, help=f"type {WIPE_CONFIRMATION} to proceed"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None or (args.command == "chain" and not args.chain_command):
        parser.print_help()
        return 2
    try:
        return asyncio.run(_run(args))
    except VaultError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
