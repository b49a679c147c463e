"""MCP server entry point for the Aquacomputer Octo virtual sensors.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from mcp.server.fastmcp import FastMCP

from .octo import Octo
from .protocol.framing import SENSOR_COUNT, decode_frame, verify_frame
from .transport.usb_connection import iter_devices

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "octo-virtual-sensors",
    instructions="MCP server for the Aquacomputer Octo virtual temperature sensors",
)

# Global controller state; the lock serializes every tool that touches it
_octo: Octo | None = None
_lock = threading.Lock()


def _get_octo() -> Octo:
    """Get the active controller, raising if not connected."""
    if _octo is None:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _octo


def _frame_dict(octo: Octo) -> dict[str, Any]:
    frame = octo.frame
    return {
        "frame_hex": frame.hex(" "),
        "valid": verify_frame(frame),
        "sensors": [
            None if raw is None else raw / 100 for raw in decode_frame(frame)
        ],
    }


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect() -> dict[str, Any]:
    """Locate the Octo on the USB bus (vendor/product 0x0c70:0xf011)."""
    global _octo
    with _lock:
        if _octo is not None:
            return {
                "connected": True,
                "message": "Already connected",
                **_octo.device_info.to_dict(),
            }
        _octo = Octo()
        logger.info("Connected")
        return {"connected": True, **_octo.device_info.to_dict()}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Forget the located Octo."""
    global _octo
    with _lock:
        if _octo is not None:
            logger.info("Disconnected")
        _octo = None
    return {"disconnected": True}


@mcp.tool()
def list_usb_devices() -> dict[str, Any]:
    """List vendor/product ids of every attached USB device."""
    return {"devices": [info.to_dict() for info in iter_devices()]}


# ─── SENSOR TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def update_virtual_sensors(values: list[int]) -> dict[str, Any]:
    """Set the Octo's virtual temperature sensors.

    Args:
        values: Up to 16 whole-degree temperatures (0-655); values[i] sets
                virtual sensor i+1. Sensors without a value become unset.
    """
    if len(values) > SENSOR_COUNT:
        return {"error": f"At most {SENSOR_COUNT} values are supported"}
    if any(not 0 <= v <= 655 for v in values):
        return {"error": "Values must be 0-655"}

    with _lock:
        octo = _get_octo()
        written = octo.update_virtual_sensors(values)
        return {"written": written, **_frame_dict(octo)}


@mcp.tool()
def get_frame() -> dict[str, Any]:
    """Show the frame last sent to the Octo and the sensor values it holds."""
    with _lock:
        return _frame_dict(_get_octo())


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("octo://frame")
def resource_frame() -> str:
    """Current virtual sensor frame."""
    with _lock:
        if _octo is None:
            return json.dumps({"connected": False})
        return json.dumps(_frame_dict(_octo))


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
