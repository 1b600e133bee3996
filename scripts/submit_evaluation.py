"""Submit an interaction to the evaluation pipeline and/or print its status.

Usage:
  # Submit one interaction (subject to sampling)
  python scripts/submit_evaluation.py --query "What is the notice period?" \
      --response "30 days [MSA, Section 4: Term]" --context-file context.txt

  # Always evaluate, skipping the sampling gate
  python scripts/submit_evaluation.py --query ... --response ... --force

  # Only print queue status, stats and health
  python scripts/submit_evaluation.py --status

Requires the API server to be running (e.g. uvicorn quality_eval.main:app).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import httpx


def _request(client: httpx.Client, method: str, url: str, **kwargs) -> dict:
    try:
        resp = client.request(method, url, **kwargs)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        print(e.response.text, file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"Request failed: {e}", file=sys.stderr)
        sys.exit(1)
    return resp.json()


def _print_status(data: dict) -> None:
    queue = data.get("queue", {})
    stats = data.get("stats", {})
    print("=== Queue ===")
    print(f"  pending:   {queue.get('pending')}/{queue.get('capacity')}")
    print(f"  active:    {queue.get('active')}")
    print(f"  processed: {queue.get('processed')}")
    print(f"  dropped:   {queue.get('dropped')} (queue full)")
    print(f"  failed:    {queue.get('failed')} (retries exhausted)")
    print()
    print("=== Stats ===")
    for k, v in stats.items():
        if isinstance(v, float):
            print(f"  {k}: {v:.2f}")
        else:
            print(f"  {k}: {v}")
    print()
    print(f"health: {data.get('health')}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Submit an interaction for quality evaluation")
    parser.add_argument("--query", help="User question")
    parser.add_argument("--response", help="Agent response to judge")
    parser.add_argument("--context", default="", help="Retrieved context (inline)")
    parser.add_argument("--context-file", help="Read retrieved context from a file ('-' for stdin)")
    parser.add_argument("--force", action="store_true", help="Bypass the sampling gate")
    parser.add_argument("--status", action="store_true", help="Print pipeline status")
    parser.add_argument(
        "--url",
        default="http://localhost:8000/api/v1/evaluations",
        help="Evaluations API base URL",
    )
    args = parser.parse_args()

    if not args.status and not (args.query and args.response):
        parser.error("--query and --response are required unless --status is given")

    context = args.context
    if args.context_file == "-":
        context = sys.stdin.read()
    elif args.context_file:
        path = Path(args.context_file)
        if not path.exists():
            print(f"Error: file not found: {path}", file=sys.stderr)
            sys.exit(1)
        context = path.read_text()

    base_url = args.url.rstrip("/")
    with httpx.Client(timeout=30.0) as client:
        if args.query and args.response:
            data = _request(
                client,
                "POST",
                f"{base_url}/submit",
                json={
                    "query": args.query,
                    "response": args.response,
                    "context": context,
                    "force": args.force,
                },
            )
            if not data.get("sampled"):
                print("Not sampled (evaluation disabled or outside the sample rate)")
            elif data.get("queued"):
                print("Queued for evaluation")
            else:
                print("Dropped: evaluation queue is full", file=sys.stderr)

        if args.status:
            if args.query:
                print()
            _print_status(_request(client, "GET", f"{base_url}/status"))


if __name__ == "__main__":
    main()
