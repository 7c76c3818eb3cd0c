#!/usr/bin/env python3
"""
Application configuration.

Every setting comes from an environment variable with a development default.
create_app() accepts a dict that overrides any of these (tests use this to
point at an in-memory database).
"""

import os

# ============================================================================
# Flask SECRET_KEY (Development default provided, change in production!)
# ============================================================================

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")

# Warn if using default secret key
if SECRET_KEY == "dev-secret-key-change-in-production":
    import warnings
    warnings.warn(
        "Using default SECRET_KEY! This is INSECURE for production.\n"
        "Set SECRET_KEY in .env file or run: export SECRET_KEY=$(openssl rand -hex 32)",
        RuntimeWarning,
        stacklevel=2
    )

SESSION_LIFETIME_HOURS = int(os.getenv("SESSION_LIFETIME_HOURS", "12"))

# ============================================================================
# Database
# ============================================================================

# Empty means SQLite file next to the package (see models.init_db)
DATABASE_URL = os.getenv("DATABASE_URL", "")

# ============================================================================
# Hypervisor backend
# ============================================================================

# database: status changes are only recorded, no hypervisor is contacted
# libvirt:  virsh on this host (or LIBVIRT_URI)
# proxmox:  Proxmox VE API via proxmoxer
VM_BACKEND = os.getenv("VM_BACKEND", "database").lower()

LIBVIRT_URI = os.getenv("LIBVIRT_URI", "")
VIRSH_TIMEOUT = int(os.getenv("VIRSH_TIMEOUT", "30"))

PVE_HOST = os.getenv("PVE_HOST", "")
PVE_PORT = int(os.getenv("PVE_PORT", "8006"))
PVE_USER = os.getenv("PVE_USER", "root@pam")
PVE_PASSWORD = os.getenv("PVE_PASSWORD", "")
PVE_VERIFY = os.getenv("PVE_VERIFY", "False").lower() in ("true", "1", "yes")

# ============================================================================
# VM request limits
# ============================================================================

MIN_MEMORY_MB = 1024
MAX_MEMORY_MB = int(os.getenv("MAX_MEMORY_MB", "65536"))
MIN_VCPUS = 1
MAX_VCPUS = int(os.getenv("MAX_VCPUS", "16"))
MIN_STORAGE_GB = 5
MAX_STORAGE_GB = int(os.getenv("MAX_STORAGE_GB", "2048"))

DEFAULT_MEMORY_MB = 2048
DEFAULT_VCPUS = 2
DEFAULT_STORAGE_GB = 20
DEFAULT_DURATION = "1 month"

OS_TYPES = ("linux", "windows", "macos", "other")
DURATIONS = ("1 week", "2 weeks", "1 month", "3 months", "6 months", "1 semester")


def as_flask_config() -> dict:
    """Settings copied into app.config by create_app()."""
    return {
        "VM_BACKEND": VM_BACKEND,
        "LIBVIRT_URI": LIBVIRT_URI,
        "VIRSH_TIMEOUT": VIRSH_TIMEOUT,
        "PVE_HOST": PVE_HOST,
        "PVE_PORT": PVE_PORT,
        "PVE_USER": PVE_USER,
        "PVE_PASSWORD": PVE_PASSWORD,
        "PVE_VERIFY": PVE_VERIFY,
    }
