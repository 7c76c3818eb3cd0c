#!/usr/bin/env python3
"""
Connection details for running VMs, including .rdp files for Windows guests.
"""

import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)

RDP_PORT = 3389
SSH_PORT = 22


def _safe_filename(name: str) -> str:
    return re.sub(r'[^A-Za-z0-9._-]+', '_', name or 'vm') or 'vm'


def rdp_filename(vm) -> str:
    return f"{_safe_filename(vm.name)}.rdp"


def connection_info(vm) -> Dict[str, Any]:
    """How to reach a VM: RDP for Windows, SSH for everything else.

    The address falls back to the VM name when the backend has not reported
    an IP yet, so the client always gets something it can try.
    """
    address = vm.ip_address or vm.name
    if (vm.os or '').lower() == 'windows':
        return {
            'protocol': 'rdp',
            'address': address,
            'port': RDP_PORT,
            'download': rdp_filename(vm),
        }
    return {
        'protocol': 'ssh',
        'address': address,
        'port': SSH_PORT,
        'command': f"ssh {address}",
    }


def build_rdp(vm) -> str:
    """
    Build a minimal .rdp file content for a Windows VM.
    Falls back to the VM name as the address when the IP is unknown.
    """
    if vm is None:
        raise ValueError("VM is None")

    address = vm.ip_address or vm.name
    logger.debug("Building RDP file for %s at %s", vm.name, address)

    # Minimal valid RDP file format that Windows Remote Desktop will accept
    return (
        f"full address:s:{address}:{RDP_PORT}\r\n"
        "prompt for credentials:i:1\r\n"
        "administrative session:i:0\r\n"
        "authentication level:i:2\r\n"
        "screen mode id:i:2\r\n"
        "desktopwidth:i:1920\r\n"
        "desktopheight:i:1080\r\n"
        "session bpp:i:32\r\n"
        "compression:i:1\r\n"
        "redirectclipboard:i:1\r\n"
        "redirectprinters:i:0\r\n"
        "autoreconnection enabled:i:1\r\n"
        "negotiate security layer:i:1\r\n"
    )
