#!/usr/bin/env python3
"""
Pydantic models for InstallBox requests, resolved inputs and the
provisioning profile.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from installbox.paths import default_install_dir


class HardwareProfile(BaseModel):
    """Virtual hardware applied by ``modifyvm``."""

    model_config = ConfigDict(frozen=True)

    os_type: str = Field(default="FreeBSD_64", description="VirtualBox guest OS type id")
    cpus: int = Field(default=2, ge=1, le=64, description="Number of vCPUs")
    memory_mb: int = Field(default=1024, ge=128, le=131072, description="RAM in MiB")
    vram_mb: int = Field(default=128, ge=1, le=256, description="Video RAM in MiB")
    acpi: bool = True
    hpet: bool = True
    graphics_controller: Literal["vboxvga", "vmsvga", "vboxsvga", "none"] = "vmsvga"
    firmware: Literal["bios", "efi", "efi32", "efi64"] = "efi64"
    usb: bool = True
    bios_logo_display_time_ms: int = Field(default=0, ge=0, le=65535)


class StorageProfile(BaseModel):
    """Controller, disk formats, sizes and ports for the two VM disks."""

    model_config = ConfigDict(frozen=True)

    controller_name: str = "SATA"
    controller_bus: str = "sata"
    controller_chipset: str = "IntelAhci"
    host_io_cache: bool = True
    bootable: bool = True

    installer_disk_format: str = "VDI"
    installer_disk_size_mb: int = Field(default=8192, ge=1)
    installer_port: int = Field(default=1, ge=0, le=29)

    runtime_disk_format: str = "VHD"
    runtime_disk_size_mb: int = Field(default=16384, ge=1)
    runtime_port: int = Field(default=0, ge=0, le=29)

    @model_validator(mode="after")
    def ports_must_differ(self) -> "StorageProfile":
        if self.installer_port == self.runtime_port:
            raise ValueError("installer_port and runtime_port must be different")
        return self

    @property
    def installer_disk_extension(self) -> str:
        return self.installer_disk_format.lower()

    @property
    def runtime_disk_extension(self) -> str:
        return self.runtime_disk_format.lower()


class ProvisioningProfile(BaseModel):
    """Every fixed resource constant used while provisioning, in one place."""

    model_config = ConfigDict(frozen=True)

    hardware: HardwareProfile = Field(default_factory=HardwareProfile)
    storage: StorageProfile = Field(default_factory=StorageProfile)


class ProvisioningRequest(BaseModel):
    """Caller-supplied parameters for a single provisioning run."""

    model_config = ConfigDict(frozen=True)

    vm_name: str = Field(description="VM name, also the VM directory name")
    installer_image: Optional[str] = Field(default=None, description="Image filename or path")
    vm_storage_path: Optional[str] = Field(default=None, description="Base folder for VMs")
    hypervisor_install_dir: Path = Field(default_factory=default_install_dir)

    @field_validator("vm_name")
    @classmethod
    def name_must_be_valid(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("VM name cannot be empty")
        v = v.strip()
        if len(v) > 64:
            raise ValueError("VM name must be <= 64 characters")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("VM name must be usable as a directory name")
        return v

    @field_validator("installer_image", "vm_storage_path")
    @classmethod
    def blank_means_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ResolvedInputs(BaseModel):
    """Validated filesystem inputs, checked at the moment of resolution."""

    model_config = ConfigDict(frozen=True)

    installer_image_path: Path
    vm_base_path: Path

    @field_validator("installer_image_path")
    @classmethod
    def image_must_exist(cls, v: Path) -> Path:
        v = v.expanduser().absolute()
        if not v.is_file():
            raise ValueError(f"Installer image not found: {v}")
        return v

    @field_validator("vm_base_path")
    @classmethod
    def base_must_exist(cls, v: Path) -> Path:
        v = v.expanduser().absolute()
        if not v.is_dir():
            raise ValueError(f"VM storage directory not found: {v}")
        return v


class VmLayout(BaseModel):
    """Where VirtualBox will place the VM's files."""

    model_config = ConfigDict(frozen=True)

    vm_directory: Path
    installer_disk: Path
    runtime_disk: Path
    descriptor_file: Path

    @classmethod
    def for_vm(
        cls,
        vm_base_path: Path,
        vm_name: str,
        storage: Optional[StorageProfile] = None,
    ) -> "VmLayout":
        storage = storage or StorageProfile()
        vm_directory = Path(vm_base_path) / vm_name
        return cls(
            vm_directory=vm_directory,
            installer_disk=vm_directory / f"{vm_name}_installer.{storage.installer_disk_extension}",
            runtime_disk=vm_directory / f"{vm_name}.{storage.runtime_disk_extension}",
            descriptor_file=vm_directory / f"{vm_name}.vbox",
        )


class Cancelled:
    """Returned by the resolver when the user dismisses a prompt."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CANCELLED"


CANCELLED = Cancelled()
