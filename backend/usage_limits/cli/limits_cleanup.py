"""CLI for triggering an organization's limit usage cleanup."""

from __future__ import annotations

import argparse
import json
import sys
from typing import cast
from urllib import request


def build_cleanup_url(*, base_url: str) -> str:
    """Build the limits cleanup endpoint URL."""
    return f"{base_url.rstrip('/')}/api/v1/limits/cleanup"


def trigger_limits_cleanup(
    *,
    base_url: str,
    organization_id: str,
    timeout_seconds: int,
) -> dict[str, object]:
    """POST a cleanup request for one organization and return the decoded result."""
    headers = {
        "Accept": "application/json",
        "X-Organization-Id": organization_id,
    }
    req = request.Request(build_cleanup_url(base_url=base_url), headers=headers, method="POST")
    with request.urlopen(req, timeout=timeout_seconds) as response:  # noqa: S310
        payload = response.read().decode("utf-8")
    decoded = json.loads(payload)
    if not isinstance(decoded, dict):
        msg = "limits cleanup payload is not a JSON object"
        raise ValueError(msg)
    return cast(dict[str, object], decoded)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m usage_limits.cli.limits_cleanup",
        description="Reset an organization's limit counters whose cleanup interval has elapsed.",
    )
    parser.add_argument("--organization-id", required=True)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--timeout-seconds", type=int, default=12)
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print single-line JSON output.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        payload = trigger_limits_cleanup(
            base_url=args.base_url,
            organization_id=args.organization_id,
            timeout_seconds=args.timeout_seconds,
        )
    except Exception as exc:  # pragma: no cover - operator output
        print(f"limits-cleanup error: {exc}", file=sys.stderr)
        return 1

    if args.compact:
        print(json.dumps(payload, sort_keys=True))
    else:
        print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
