#!/usr/bin/env python3
"""
Hypervisor backends - the layer that actually powers VMs on and off.

Three interchangeable backends, selected by the VM_BACKEND setting:

- database: no hypervisor; actions only change the recorded status
- libvirt:  runs virsh on this host (optionally against LIBVIRT_URI)
- proxmox:  Proxmox VE API through proxmoxer

Each backend reports status in its own words ("shut off" vs "stopped" vs
"paused"); callers pass the result through vm_state.map_state().
All failures surface as HypervisorError.
"""

import logging
import re
import subprocess
import threading
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from vmguardian.exceptions import HypervisorError, NotFoundError, ValidationError
from vmguardian.services.vm_state import EXPECTED_STATUS, TRANSITION_ACTIONS

logger = logging.getLogger(__name__)


class HypervisorBackend:
    """Common interface. Methods take the VM (domain) name."""

    name = 'base'

    def list_vms(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get_state(self, vm_name: str) -> Optional[str]:
        """Raw status string, or None when the backend cannot tell."""
        raise NotImplementedError

    def get_ip(self, vm_name: str) -> Optional[str]:
        return None

    def start(self, vm_name: str) -> str:
        raise NotImplementedError

    def stop(self, vm_name: str) -> str:
        raise NotImplementedError

    def shutdown(self, vm_name: str) -> str:
        raise NotImplementedError

    def restart(self, vm_name: str) -> str:
        raise NotImplementedError

    def suspend(self, vm_name: str) -> str:
        raise NotImplementedError

    def delete(self, vm_name: str, remove_storage: bool = False) -> str:
        raise NotImplementedError

    def perform(self, action: str, vm_name: str) -> str:
        """Run a lifecycle transition by action name; returns a message."""
        if action not in TRANSITION_ACTIONS:
            raise ValidationError(f"Unknown VM action: {action}")
        return getattr(self, action)(vm_name)


class DatabaseBackend(HypervisorBackend):
    """No hypervisor attached: transitions are recorded, never executed."""

    name = 'database'

    def list_vms(self) -> List[Dict[str, Any]]:
        return []

    def get_state(self, vm_name: str) -> Optional[str]:
        return None

    def _record(self, action: str, vm_name: str) -> str:
        logger.info("database backend: %s %s (status %r recorded only)",
                    action, vm_name, EXPECTED_STATUS.get(action))
        return f"VM {vm_name} {action} recorded"

    def start(self, vm_name: str) -> str:
        return self._record('start', vm_name)

    def stop(self, vm_name: str) -> str:
        return self._record('stop', vm_name)

    def shutdown(self, vm_name: str) -> str:
        return self._record('shutdown', vm_name)

    def restart(self, vm_name: str) -> str:
        return self._record('restart', vm_name)

    def suspend(self, vm_name: str) -> str:
        return self._record('suspend', vm_name)

    def delete(self, vm_name: str, remove_storage: bool = False) -> str:
        return self._record('delete', vm_name)


# ---------------------------------------------------------------------------
# libvirt (virsh)
# ---------------------------------------------------------------------------

# " 3    student-vm-1   running" / " -    web01          shut off"
_VIRSH_LIST_RE = re.compile(r'^\s*(\S+)\s+(\S+)\s+(.+?)\s*$')
_IPV4_RE = re.compile(r'ipv4\s+(\d{1,3}(?:\.\d{1,3}){3})')


class LibvirtBackend(HypervisorBackend):
    """Drives libvirt domains through the virsh command line."""

    name = 'libvirt'

    def __init__(self, uri: str = '', timeout: int = 30):
        self.uri = uri
        self.timeout = timeout

    def _command(self, *args: str) -> List[str]:
        cmd = ['virsh']
        if self.uri:
            cmd += ['-c', self.uri]
        return cmd + list(args)

    def _run(self, *args: str) -> str:
        cmd = self._command(*args)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except FileNotFoundError:
            raise HypervisorError("virsh is not installed on this host")
        except subprocess.TimeoutExpired:
            logger.error("virsh timed out after %ss: %s", self.timeout, ' '.join(cmd))
            raise HypervisorError(f"virsh {args[0]} timed out after {self.timeout}s")

        if result.returncode != 0:
            error_msg = (result.stderr or '').strip() or (result.stdout or '').strip() or "Unknown error"
            logger.error("virsh %s failed: %s", ' '.join(args), error_msg)
            raise HypervisorError(f"virsh {args[0]} failed: {error_msg}")

        return (result.stdout or '').strip()

    def list_vms(self) -> List[Dict[str, Any]]:
        output = self._run('list', '--all')
        vms = []
        # Skip the header and separator lines
        for line in output.splitlines()[2:]:
            match = _VIRSH_LIST_RE.match(line)
            if not match:
                continue
            dom_id, name, state = match.groups()
            vms.append({
                'id': dom_id if dom_id != '-' else None,
                'name': name,
                'state': state,
            })
        return vms

    def get_state(self, vm_name: str) -> Optional[str]:
        return self._run('domstate', vm_name) or None

    def get_ip(self, vm_name: str) -> Optional[str]:
        try:
            output = self._run('domifaddr', vm_name)
        except HypervisorError as e:
            logger.debug("No address for %s: %s", vm_name, e)
            return None
        match = _IPV4_RE.search(output)
        return match.group(1) if match else None

    def get_info(self, vm_name: str) -> Dict[str, str]:
        """Parse `virsh dominfo` into a dict with snake_case keys."""
        info = {}
        for line in self._run('dominfo', vm_name).splitlines():
            key, sep, value = line.partition(':')
            if sep and key.strip() and value.strip():
                info[re.sub(r'\s+', '_', key.strip().lower())] = value.strip()
        info['name'] = vm_name
        return info

    def start(self, vm_name: str) -> str:
        return self._run('start', vm_name) or f"VM {vm_name} started successfully"

    def stop(self, vm_name: str) -> str:
        return self._run('destroy', vm_name) or f"VM {vm_name} stopped successfully"

    def shutdown(self, vm_name: str) -> str:
        return self._run('shutdown', vm_name) or f"VM {vm_name} is shutting down"

    def restart(self, vm_name: str) -> str:
        return self._run('reboot', vm_name) or f"VM {vm_name} is restarting"

    def suspend(self, vm_name: str) -> str:
        return self._run('suspend', vm_name) or f"VM {vm_name} suspended successfully"

    def delete(self, vm_name: str, remove_storage: bool = False) -> str:
        args = ['undefine', vm_name]
        if remove_storage:
            args.append('--remove-all-storage')
        return self._run(*args) or f"VM {vm_name} deleted successfully"


# ---------------------------------------------------------------------------
# Proxmox VE
# ---------------------------------------------------------------------------

class ProxmoxBackend(HypervisorBackend):
    """Drives QEMU guests on a Proxmox VE cluster, located by VM name."""

    name = 'proxmox'

    def __init__(self, host: str, user: str, password: str, port: int = 8006, verify_ssl: bool = False):
        if not host:
            raise HypervisorError("PVE_HOST is not configured")
        self.host = host
        self.user = user
        self.password = password
        self.port = port
        self.verify_ssl = verify_ssl
        self._api = None
        self._lock = threading.Lock()

    @property
    def api(self):
        """Lazily created, shared ProxmoxAPI connection."""
        if self._api is None:
            with self._lock:
                # Double-check inside lock to handle race conditions
                if self._api is None:
                    from proxmoxer import ProxmoxAPI

                    if not self.verify_ssl:
                        # Suppress SSL warnings for self-signed certificates
                        import urllib3
                        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

                    try:
                        self._api = ProxmoxAPI(
                            self.host,
                            port=self.port,
                            user=self.user,
                            password=self.password,
                            verify_ssl=self.verify_ssl,
                        )
                    except Exception as e:
                        logger.error("Cannot connect to Proxmox at %s: %s", self.host, e)
                        raise HypervisorError(f"Cannot connect to Proxmox at {self.host}: {e}")
        return self._api

    def _resources(self) -> List[Dict[str, Any]]:
        try:
            return self.api.cluster.resources.get(type='vm') or []
        except HypervisorError:
            raise
        except Exception as e:
            raise HypervisorError(f"Failed to list Proxmox VMs: {e}")

    def _locate(self, vm_name: str) -> Tuple[str, int]:
        for res in self._resources():
            if res.get('name') == vm_name and res.get('type', 'qemu') == 'qemu':
                return res['node'], int(res['vmid'])
        raise NotFoundError(f"VM {vm_name} not found on Proxmox")

    def _guest(self, vm_name: str):
        node, vmid = self._locate(vm_name)
        return self.api.nodes(node).qemu(vmid), vmid

    def _status_post(self, vm_name: str, command: str) -> str:
        guest, vmid = self._guest(vm_name)
        try:
            upid = getattr(guest.status, command).post()
        except Exception as e:
            logger.error("Proxmox %s failed for %s (%s): %s", command, vm_name, vmid, e)
            raise HypervisorError(f"Proxmox {command} failed for {vm_name}: {e}")
        logger.info("Proxmox %s issued for %s (vmid %s): %s", command, vm_name, vmid, upid)
        return f"VM {vm_name} {command} task submitted"

    def list_vms(self) -> List[Dict[str, Any]]:
        return [
            {'id': res.get('vmid'), 'name': res.get('name'), 'state': res.get('status')}
            for res in self._resources()
            if res.get('type', 'qemu') == 'qemu'
        ]

    def get_state(self, vm_name: str) -> Optional[str]:
        guest, vmid = self._guest(vm_name)
        try:
            current = guest.status.current.get()
        except Exception as e:
            raise HypervisorError(f"Failed to read status of {vm_name}: {e}")
        # qmpstatus distinguishes paused guests, which report status=running
        return current.get('qmpstatus') or current.get('status')

    def get_ip(self, vm_name: str) -> Optional[str]:
        guest, vmid = self._guest(vm_name)
        try:
            result = guest.agent('network-get-interfaces').get()
        except Exception as e:
            logger.debug("Guest agent unavailable for %s: %s", vm_name, e)
            return None
        for iface in (result or {}).get('result', []):
            if iface.get('name') == 'lo':
                continue
            for addr in iface.get('ip-addresses', []):
                if addr.get('ip-address-type') == 'ipv4':
                    return addr.get('ip-address')
        return None

    def start(self, vm_name: str) -> str:
        return self._status_post(vm_name, 'start')

    def stop(self, vm_name: str) -> str:
        return self._status_post(vm_name, 'stop')

    def shutdown(self, vm_name: str) -> str:
        return self._status_post(vm_name, 'shutdown')

    def restart(self, vm_name: str) -> str:
        return self._status_post(vm_name, 'reboot')

    def suspend(self, vm_name: str) -> str:
        return self._status_post(vm_name, 'suspend')

    def delete(self, vm_name: str, remove_storage: bool = False) -> str:
        guest, vmid = self._guest(vm_name)
        try:
            if remove_storage:
                guest.delete(purge=1, **{'destroy-unreferenced-disks': 1})
            else:
                guest.delete()
        except Exception as e:
            raise HypervisorError(f"Proxmox delete failed for {vm_name}: {e}")
        logger.info("Proxmox delete issued for %s (vmid %s)", vm_name, vmid)
        return f"VM {vm_name} deleted successfully"


def create_backend(config: Dict[str, Any]) -> HypervisorBackend:
    """Build the backend named by config['VM_BACKEND']."""
    kind = (config.get('VM_BACKEND') or 'database').lower()
    if kind == 'database':
        return DatabaseBackend()
    if kind == 'libvirt':
        return LibvirtBackend(uri=config.get('LIBVIRT_URI', ''), timeout=int(config.get('VIRSH_TIMEOUT', 30)))
    if kind == 'proxmox':
        return ProxmoxBackend(
            host=config.get('PVE_HOST', ''),
            user=config.get('PVE_USER', 'root@pam'),
            password=config.get('PVE_PASSWORD', ''),
            port=int(config.get('PVE_PORT', 8006)),
            verify_ssl=bool(config.get('PVE_VERIFY', False)),
        )
    raise ValueError(f"Unknown VM_BACKEND: {kind}")


def get_backend() -> HypervisorBackend:
    """Backend for the current app, created on first use."""
    backend = current_app.extensions.get('vm_backend')
    if backend is None:
        backend = create_backend(current_app.config)
        current_app.extensions['vm_backend'] = backend
        logger.info("Using %s hypervisor backend", backend.name)
    return backend
