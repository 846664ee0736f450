"""
Loading of the optional ``.installbox.yaml`` configuration file.

Example:

    hypervisor:
      install_dir: ${VBOX_HOME}
    profile:
      hardware:
        cpus: 4
      storage:
        runtime_disk_size_mb: 32768

``${VAR}`` placeholders are expanded from ``.installbox.env`` next to the
config file, then from the process environment. A relative
``hypervisor.install_dir`` is taken relative to the config file.
"""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from installbox.errors import ConfigError
from installbox.models import ProvisioningProfile

INSTALLBOX_CONFIG_FILE = ".installbox.yaml"
INSTALLBOX_ENV_FILE = ".installbox.env"


class HypervisorSettings(BaseModel):
    install_dir: Optional[Path] = Field(default=None, description="VirtualBox install dir")


class InstallBoxConfig(BaseModel):
    """Complete InstallBox configuration with validation."""

    version: str = Field(default="1", description="Config version")
    hypervisor: HypervisorSettings = Field(default_factory=HypervisorSettings)
    profile: ProvisioningProfile = Field(default_factory=ProvisioningProfile)


def load_env_file(env_path: Path) -> dict:
    """Load environment variables from .env file."""
    env_vars = {}
    if not env_path.exists():
        return env_vars

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, value = line.split("=", 1)
                env_vars[key.strip()] = value.strip().strip("'\"")

    return env_vars


def expand_env_vars(value, env_vars: dict):
    """Expand environment variables in string values like ${VAR_NAME}."""
    if isinstance(value, str):
        def replacer(match):
            var_name = match.group(1)
            return env_vars.get(var_name, os.environ.get(var_name, match.group(0)))

        return re.sub(r"\$\{([^}]+)\}", replacer, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v, env_vars) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item, env_vars) for item in value]
    return value


def _find_unexpanded_env_placeholders(value) -> set:
    if isinstance(value, str):
        return set(re.findall(r"\$\{([^}]+)\}", value))
    if isinstance(value, dict):
        found = set()
        for v in value.values():
            found |= _find_unexpanded_env_placeholders(v)
        return found
    if isinstance(value, list):
        found = set()
        for item in value:
            found |= _find_unexpanded_env_placeholders(item)
        return found
    return set()


def load_config(path: Optional[Path] = None, required: bool = False) -> InstallBoxConfig:
    """Load and validate InstallBox configuration.

    Without ``path`` the file is looked up in the current directory; a
    missing default file yields the built-in defaults.
    """
    config_file = Path(path) if path else Path.cwd() / INSTALLBOX_CONFIG_FILE
    if config_file.is_dir():
        config_file = config_file / INSTALLBOX_CONFIG_FILE

    if not config_file.exists():
        if required:
            raise ConfigError(f"Config file not found: {config_file}")
        return InstallBoxConfig()

    env_file = config_file.parent / INSTALLBOX_ENV_FILE
    env_vars = load_env_file(env_file)

    try:
        with open(config_file) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {config_file}: {e}")

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_file} must contain a YAML mapping")

    raw = expand_env_vars(raw, env_vars)

    unresolved = _find_unexpanded_env_placeholders(raw)
    if unresolved:
        unresolved_sorted = ", ".join(sorted(unresolved))
        raise ConfigError(
            f"Unresolved environment variables in config: {unresolved_sorted}. "
            f"Set them in {env_file} or in the process environment."
        )

    try:
        config = InstallBoxConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_file}: {e}")

    # Relative install dirs are relative to the config file, not the cwd.
    install_dir = config.hypervisor.install_dir
    if install_dir is not None:
        install_dir = install_dir.expanduser()
        if not install_dir.is_absolute():
            install_dir = config_file.parent.absolute() / install_dir
        config.hypervisor.install_dir = install_dir

    return config
