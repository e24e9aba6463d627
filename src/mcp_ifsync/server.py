"""MCP Server for interface configuration reconciliation.

Provides access to device interfaces through the controller NBI:
- Interface discovery (observed state)
- Preview of the intents an edit would produce
- Reconciliation: ordered, stop-on-first-failure intent execution

Tools exposed:
- list_devices: List all configured devices
- discover_interfaces: Get observed state of all interfaces on a device
- get_interface: Get observed state of one interface
- preview_interface: Show the intents an edit would produce (no changes)
- reconcile_interface: Apply an edit to one interface
- list_intents: List intents supported by the controller
- get_audit_log: Read recent intents from the audit log
"""
import asyncio
import json
import logging
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .config.inventory import DeviceInventory
from .nbi import NBIClient
from .reconcile import ReconciliationController, summarize_diff
from .utils.logging_config import setup_logging, timed_section
from .utils.audit_log import setup_audit_logging, get_recent_changes

logger = logging.getLogger(__name__)

# Global inventory (initialized on first use)
inventory: Optional[DeviceInventory] = None
controller: Optional[ReconciliationController] = None


def get_inventory() -> DeviceInventory:
    """Get or create the device inventory."""
    global inventory
    if inventory is None:
        inventory = DeviceInventory()
    return inventory


def get_controller() -> ReconciliationController:
    """Get or create the reconciliation controller."""
    global controller
    if controller is None:
        controller = ReconciliationController(
            intent_timeout=get_inventory().settings.intent_timeout
        )
    return controller


def open_client(inv: DeviceInventory, device_id: str) -> NBIClient:
    """Create an NBI client for a device's controller."""
    return NBIClient(inv.get_controller_config(device_id))


def _json(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


# Create MCP server
server = Server("mcp-ifsync")


# Shared input schema for interface edits
EDIT_PROPERTIES = {
    "device_id": {
        "type": "string",
        "description": "Device ID from the inventory"
    },
    "interface": {
        "type": "string",
        "description": "Interface name (e.g., 'GigabitEthernet1')"
    },
    "admin_status": {
        "type": "string",
        "enum": ["up", "down"],
        "description": "Administrative status"
    },
    "description": {
        "type": "string",
        "description": "Interface description (empty string clears it)"
    },
    "ipv4_address": {
        "type": "string",
        "description": "IPv4 address; only applied together with subnet_mask"
    },
    "subnet_mask": {
        "type": "string",
        "description": "IPv4 subnet mask (e.g., 255.255.255.0)"
    },
    "ipv6": {
        "type": "string",
        "description": "IPv6 address, optionally with /prefix (default prefix 64)"
    },
    "mtu": {
        "type": "integer",
        "description": "MTU in bytes"
    },
    "ospf_process_id": {
        "type": "string",
        "description": "OSPF process id; empty together with ospf_area removes membership"
    },
    "ospf_area": {
        "type": "string",
        "description": "OSPF area; empty together with ospf_process_id removes membership"
    },
}

EDIT_FIELDS = [key for key in EDIT_PROPERTIES if key not in ("device_id", "interface")]


# === TOOLS ===

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_devices",
            description="List all configured devices with their controller node ids",
            inputSchema={
                "type": "object",
                "properties": {
                    "group": {
                        "type": "string",
                        "description": "Only list devices in this inventory group"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="discover_interfaces",
            description="Discover all interfaces of a device and their current state",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": EDIT_PROPERTIES["device_id"]
                },
                "required": ["device_id"]
            }
        ),
        Tool(
            name="get_interface",
            description="Get the current state of one interface",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": EDIT_PROPERTIES["device_id"],
                    "interface": EDIT_PROPERTIES["interface"],
                },
                "required": ["device_id", "interface"]
            }
        ),
        Tool(
            name="preview_interface",
            description=(
                "Preview the ordered intents an interface edit would produce. "
                "Nothing is sent to the device."
            ),
            inputSchema={
                "type": "object",
                "properties": EDIT_PROPERTIES,
                "required": ["device_id", "interface"]
            }
        ),
        Tool(
            name="reconcile_interface",
            description=(
                "Apply an interface edit. Only changed fields produce intents; they "
                "run in order (status, IPv4, description, MTU, IPv6, OSPF) and stop at "
                "the first failure. Applied intents are NOT rolled back. "
                "Use dry_run=true to preview."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **EDIT_PROPERTIES,
                    "dry_run": {
                        "type": "boolean",
                        "description": "Plan only, do not apply",
                        "default": False
                    },
                    "audit_context": {
                        "type": "string",
                        "description": "Reason for the change (recorded in audit log)"
                    },
                },
                "required": ["device_id", "interface"]
            }
        ),
        Tool(
            name="list_intents",
            description="List intents supported by the device's controller",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": EDIT_PROPERTIES["device_id"]
                },
                "required": ["device_id"]
            }
        ),
        Tool(
            name="get_audit_log",
            description="Get recent intents from the audit log",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": {
                        "type": "string",
                        "description": "Filter by device ID"
                    },
                    "interface": {
                        "type": "string",
                        "description": "Filter by interface name"
                    },
                    "intent": {
                        "type": "string",
                        "description": "Filter by intent name (e.g., 'interface.set_mtu')"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum records to return",
                        "default": 20
                    }
                },
                "required": []
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    device_id = arguments.get("device_id", "N/A")

    async with timed_section(f"tool:{name}", device_id=device_id):
        try:
            if name == "get_audit_log":
                return await handle_get_audit_log(
                    arguments.get("device_id"),
                    arguments.get("interface"),
                    arguments.get("intent"),
                    arguments.get("limit", 20)
                )

            inv = get_inventory()

            if name == "list_devices":
                return await handle_list_devices(inv, arguments.get("group"))

            elif name == "discover_interfaces":
                return await handle_discover_interfaces(inv, arguments["device_id"])

            elif name == "get_interface":
                return await handle_get_interface(
                    inv,
                    arguments["device_id"],
                    arguments["interface"]
                )

            elif name == "preview_interface":
                return await handle_preview_interface(inv, arguments)

            elif name == "reconcile_interface":
                return await handle_reconcile_interface(inv, arguments)

            elif name == "list_intents":
                return await handle_list_intents(inv, arguments["device_id"])

            else:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return [TextContent(type="text", text=f"Error: {str(e)}")]


# === TOOL HANDLERS ===

async def handle_list_devices(
    inv: DeviceInventory,
    group: Optional[str] = None
) -> list[TextContent]:
    """List configured devices, optionally only one group."""
    device_ids = inv.get_device_ids()
    if group:
        members = inv.get_group_members(group)
        device_ids = [d for d in device_ids if d in members]

    devices = []
    for device_id in device_ids:
        config = inv.get_device_config(device_id)
        devices.append({
            "id": device_id,
            "name": config.get("name", device_id),
            "node_id": config.get("node_id"),
            "vendor": config.get("vendor"),
            "groups": inv.get_device_groups(device_id),
        })

    return _json({"devices": devices})


async def handle_discover_interfaces(inv: DeviceInventory, device_id: str) -> list[TextContent]:
    """Discover all interfaces of a device."""
    node_id = inv.get_node_id(device_id)
    async with open_client(inv, device_id) as nbi:
        interfaces = await nbi.discover_interfaces(node_id)

    return _json({
        "device_id": device_id,
        "node_id": node_id,
        "count": len(interfaces),
        "interfaces": [i.to_dict() for i in interfaces],
    })


async def handle_get_interface(
    inv: DeviceInventory,
    device_id: str,
    interface: str
) -> list[TextContent]:
    """Get one interface's observed state."""
    node_id = inv.get_node_id(device_id)
    async with open_client(inv, device_id) as nbi:
        observed = await nbi.get_interface(node_id, interface)

    return _json({"device_id": device_id, "interface": observed.to_dict()})


def extract_edits(args: dict) -> dict:
    """Pick interface fields out of tool arguments."""
    return {key: args[key] for key in EDIT_FIELDS if key in args}


async def handle_preview_interface(inv: DeviceInventory, args: dict) -> list[TextContent]:
    """Show the intents an edit would produce."""
    device_id = args["device_id"]
    ctl = get_controller()
    node_id = inv.get_node_id(device_id)

    async with open_client(inv, device_id) as nbi:
        observed = await nbi.get_interface(node_id, args["interface"])

    desired = ctl.parser.parse(observed, extract_edits(args))
    validation = ctl.validate(observed, desired)

    response: dict = {
        "device_id": device_id,
        "interface": observed.name,
        "valid": validation.valid,
        "errors": validation.errors,
        "warnings": validation.warnings,
    }
    if validation.valid:
        change_set = ctl.diff(observed, desired)
        response["intents"] = [
            i.to_dict() for i in ctl.sequencer.sequence(change_set, node_id)
        ]
        response["summary"] = summarize_diff(change_set)

    return _json(response)


async def handle_reconcile_interface(inv: DeviceInventory, args: dict) -> list[TextContent]:
    """
    Apply an interface edit.

    The observed state is fetched fresh for every call; a retry after a
    failure is simply another call.
    """
    device_id = args["device_id"]
    node_id = inv.get_node_id(device_id)
    edits = extract_edits(args)

    async with open_client(inv, device_id) as nbi:
        result = await get_controller().reconcile_interface(
            node_id,
            args["interface"],
            edits,
            executor=nbi,
            source=nbi,
            device_id=device_id,
            dry_run=args.get("dry_run", False),
            user=inv.settings.user,
            audit_context=args.get("audit_context", ""),
        )

    response = result.to_dict()
    if result.failed_intent and result.applied_intents:
        response["message"] = (
            f"{len(result.applied_intents)} intent(s) were applied before the failure "
            f"and remain on the device. Rediscover the interface before retrying."
        )

    return _json(response)


async def handle_list_intents(inv: DeviceInventory, device_id: str) -> list[TextContent]:
    """List intents supported by the controller."""
    async with open_client(inv, device_id) as nbi:
        intents = await nbi.list_intents()

    return _json({"device_id": device_id, "intents": intents})


async def handle_get_audit_log(
    device_id: Optional[str] = None,
    interface: Optional[str] = None,
    intent: Optional[str] = None,
    limit: int = 20
) -> list[TextContent]:
    """Get recent intents from the audit log."""
    records = get_recent_changes(
        device_id=device_id,
        interface=interface,
        intent=intent,
        limit=limit
    )

    formatted_records = []
    for r in records:
        formatted_records.append({
            "timestamp": r.timestamp,
            "device_id": r.device_id,
            "interface": r.interface,
            "intent": r.intent,
            "dry_run": r.dry_run,
            "success": r.success,
            "parameters": r.parameters,
            "error": r.error,
        })

    return _json({
        "total_records": len(formatted_records),
        "filters": {
            "device_id": device_id,
            "interface": interface,
            "intent": intent,
            "limit": limit,
        },
        "records": formatted_records,
    })


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    inv = get_inventory()
    resources = []

    for device_id in inv.get_device_ids():
        config = inv.get_device_config(device_id)
        resources.append(Resource(
            uri=AnyUrl(f"ifsync://{device_id}/interfaces"),
            name=f"{config.get('name', device_id)} Interfaces",
            description=f"Discovered interface state for {device_id}",
            mimeType="application/json",
        ))

    return resources


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource."""
    # Parse URI: ifsync://device_id/interfaces
    uri_str = str(uri)
    if uri_str.startswith("ifsync://"):
        parts = uri_str[len("ifsync://"):].split("/")
        if len(parts) >= 2 and parts[1] == "interfaces":
            result = await handle_discover_interfaces(get_inventory(), parts[0])
            return result[0].text

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_logging()
    setup_audit_logging()

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
