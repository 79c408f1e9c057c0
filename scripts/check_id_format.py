"""check_id_format.py

Report whether a Todoist account emits legacy numeric ids, canonical ids or a
mix of both.  Samples a few tasks and projects with ``TODOIST_API_TOKEN``.

Example
-------
    TODOIST_API_TOKEN=... python scripts/check_id_format.py
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import anyio

from todoist_mcp.config import TodoistConfig
from todoist_mcp.todoist import TodoistClient, TodoistError, is_canonical, is_legacy

SAMPLE_SIZE = 3
RULE = "=" * 70

STATUS_TEXT = {
    "migrated": (
        "MIGRATED: the account uses canonical ids.\n"
        "  REST move requests go through directly; no conversion is needed."
    ),
    "legacy": (
        "LEGACY: the account still uses numeric ids.\n"
        "  REST move requests may answer 404; the gateway falls back to the Sync API."
    ),
    "mixed": (
        "MIXED: both id shapes are present, the migration is in progress.\n"
        "  Check again later."
    ),
    "unknown": "UNKNOWN: could not determine the id format.",
}


def _load_env_file(env_path: Path) -> None:
    """Load KEY=VALUE pairs from a .env style file without overriding os.environ."""
    if not env_path.exists():
        return
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key and key not in os.environ:
            os.environ[key] = val.strip().strip("\"'")


def id_format(value: object) -> str:
    if is_canonical(value):
        return "canonical"
    if is_legacy(value):
        return "numeric"
    return "unknown"


def account_status(formats: list[str]) -> str:
    has_canonical = "canonical" in formats
    has_numeric = "numeric" in formats
    if has_canonical and not has_numeric:
        return "migrated"
    if has_numeric and not has_canonical:
        return "legacy"
    if has_canonical and has_numeric:
        return "mixed"
    return "unknown"


async def _sample(client: TodoistClient) -> list[tuple[str, str]]:
    tasks = await client.get_tasks()
    projects = await client.get_projects()
    samples = [("Task", str(t.get("id"))) for t in tasks[:SAMPLE_SIZE]]
    samples += [("Project", str(p.get("id"))) for p in projects[:SAMPLE_SIZE]]
    return samples


def main() -> None:
    parser = argparse.ArgumentParser(description="Check the Todoist account id format.")
    parser.add_argument(
        "--env-file", type=Path, default=Path(".env"), help="Optional .env file to load"
    )
    args = parser.parse_args()
    _load_env_file(args.env_file)

    if not os.getenv("TODOIST_API_TOKEN"):
        sys.exit("Missing TODOIST_API_TOKEN (set it in the environment or .env).")

    client = TodoistClient(TodoistConfig.from_env())
    try:
        samples = anyio.run(_sample, client)
    except TodoistError as exc:
        sys.exit(f"Error checking id format: {exc}")

    print(RULE)
    print("Sample ids:\n")
    formats = []
    for kind, value in samples:
        fmt = id_format(value)
        formats.append(fmt)
        print(f"  {kind:<10} {value:<28} [{fmt.upper()}]")
    print()
    print(RULE)
    print(STATUS_TEXT[account_status(formats)])
    print(RULE)


if __name__ == "__main__":
    main()
