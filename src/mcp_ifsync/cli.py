#!/usr/bin/env python3
"""Apply a desired interface state from the command line.

Usage:
    ifsync-apply --device DEVICE --interface NAME [--desired FILE] [--set KEY=VALUE ...] [--dry-run]

The desired file is YAML holding the edits to apply on top of the
interface's current state, for example:

    admin_status: up
    description: uplink
    ipv4_address: 10.0.0.1
    subnet_mask: 255.255.255.0
    mtu: 1500
    ospf:
      process_id: 1
      area: 0

Environment variables:
    IFSYNC_CONFIG       Path to devices.yaml
    IFSYNC_NBI_TOKEN    Controller API token
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from .config import DeviceInventory
from .nbi import NBIClient
from .reconcile import ReconciliationController, ReconciliationResult
from .utils.audit_log import setup_audit_logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """
    Parse KEY=VALUE pairs into a dict of edits.

    Examples:
        ["description=uplink", "mtu=1500"] -> {"description": "uplink", "mtu": "1500"}
        ["ospf_area="] -> {"ospf_area": ""}
    """
    edits: dict[str, Any] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got '{item}'")
        edits[key.strip()] = value
    return edits


def load_edits(path: Path | None, assignments: list[str]) -> dict[str, Any]:
    """Merge the desired file with command-line assignments."""
    edits: dict[str, Any] = {}
    if path is not None:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping of interface fields")
        edits.update(data)
    edits.update(parse_assignments(assignments))
    return edits


async def apply(
    inventory: DeviceInventory,
    device_id: str,
    interface: str,
    edits: dict[str, Any],
    dry_run: bool,
) -> ReconciliationResult:
    """Discover, diff and apply edits to one interface."""
    settings = inventory.settings
    controller = ReconciliationController(intent_timeout=settings.intent_timeout)
    node_id = inventory.get_node_id(device_id)

    async with NBIClient(inventory.get_controller_config(device_id)) as nbi:
        return await controller.reconcile_interface(
            node_id,
            interface,
            edits,
            executor=nbi,
            source=nbi,
            device_id=device_id,
            dry_run=dry_run,
            user=settings.user,
            audit_context="ifsync-apply",
        )


def report(result: ReconciliationResult) -> None:
    """Log a human-readable run summary."""
    logger.info("=" * 60)
    for warning in result.warnings:
        logger.warning(f"  {warning}")

    if result.dry_run:
        for intent in result.planned_intents:
            logger.info(f"  [DRY-RUN] {intent}")

    for intent in result.applied_intents:
        logger.info(f"  [OK]   {intent}")

    if result.failed_intent:
        logger.error(f"  [FAIL] {result.failed_intent}")

    if result.success:
        if result.no_change:
            logger.info("No changes needed - interface already matches")
        else:
            logger.info(f"Applied {len(result.applied_intents)} intent(s)")
    else:
        logger.error(f"Reconciliation failed: {result.error}")
    logger.info("=" * 60)


def main() -> int:
    """Main entry point for ifsync-apply."""
    parser = argparse.ArgumentParser(
        description="Reconcile one interface to a desired state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview changes from a file
    ifsync-apply --device core-r1 --interface GigabitEthernet1 --desired gi1.yaml --dry-run

    # Quick edit
    ifsync-apply --device core-r1 --interface GigabitEthernet1 --set description=uplink
""",
    )
    parser.add_argument("--device", required=True, help="Inventory device id")
    parser.add_argument("--interface", required=True, help="Interface name")
    parser.add_argument("--desired", type=Path, help="YAML file with desired fields")
    parser.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set one field (repeatable)",
    )
    parser.add_argument("--config", help="Path to devices.yaml")
    parser.add_argument("--dry-run", action="store_true", help="Show intents without applying")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.desired is not None and not args.desired.exists():
        logger.error(f"Desired state file not found: {args.desired}")
        return 2

    try:
        edits = load_edits(args.desired, args.assignments)
    except (ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid desired state: {e}")
        return 2

    if not edits:
        logger.error("Nothing to apply: pass --desired or --set")
        return 2

    try:
        inventory = DeviceInventory(args.config)
        inventory.get_device_config(args.device)
    except (FileNotFoundError, KeyError) as e:
        logger.error(str(e))
        return 2

    setup_audit_logging()

    try:
        result = asyncio.run(
            apply(inventory, args.device, args.interface, edits, args.dry_run)
        )
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        report(result)

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
