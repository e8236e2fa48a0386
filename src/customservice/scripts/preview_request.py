"""CLI helper that prints the request a custom service would receive."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from ..completions import CustomServiceRequestBuilder, InfillRequestDetails, RequestDescriptor
from ..conversations.message_model import ChatMessage
from ..services.credentials import VaultCredentialStore
from ..services.settings import CustomServiceSettings, SettingsStore, redact_headers
from ..utils.logging import setup_logging

_KINDS = ("chat", "lookup", "free-chat", "infill")


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Assemble a custom-service request from the saved templates without sending it.",
    )
    parser.add_argument("--kind", choices=_KINDS, default="chat", help="Call site to preview.")
    parser.add_argument("--settings-path", type=Path, help="Override the default settings file.")
    parser.add_argument("--credentials-path", type=Path, help="Override the default credentials file.")
    parser.add_argument("--message", action="append", default=[], help="Chat turn (repeatable).")
    parser.add_argument("--system", help="Optional system prompt for chat and lookup previews.")
    parser.add_argument("--prefix", default="", help="Code before the caret for infill previews.")
    parser.add_argument("--suffix", default="", help="Code after the caret for infill previews.")
    parser.add_argument("--verbose", action="store_true", help="Log debug output to the console.")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, console=True)
    settings = SettingsStore(args.settings_path).load()
    builder = CustomServiceRequestBuilder(VaultCredentialStore(args.credentials_path))

    if args.kind != "infill" and not args.message:
        print("At least one --message is required.", file=sys.stderr)
        return 1

    descriptor = _build(builder, settings, args)
    print(_render(descriptor))
    return 0


def _build(
    builder: CustomServiceRequestBuilder,
    settings: CustomServiceSettings,
    args: argparse.Namespace,
) -> RequestDescriptor:
    if args.kind == "infill":
        return builder.build_infill_request(settings, InfillRequestDetails(args.prefix, args.suffix))
    if args.kind == "free-chat":
        return builder.build_completion_request(settings, args.message)
    messages = [ChatMessage("system", args.system)] if args.system else []
    messages.extend(ChatMessage("user", text) for text in args.message)
    if args.kind == "lookup":
        return builder.build_lookup_completion_request(settings, messages)
    return builder.build_chat_completion_request(settings, messages)


def _render(descriptor: RequestDescriptor) -> str:
    lines = [f"{descriptor.method} {descriptor.url}"]
    for name, value in redact_headers(descriptor.headers).items():
        lines.append(f"{name}: {value}")
    lines.append("")
    lines.append(json.dumps(descriptor.json(), indent=2, ensure_ascii=False))
    return "\n".join(lines)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
