"""Add the caller's public IP to the Functions storage account network rules.

Run after ``azd provision`` when the app is deployed with VNet isolation:
the storage account then rejects traffic from outside the VNet, including
the developer machine that uploads the function package.

Steps:
1. Read RESOURCE_GROUP and STORAGE_ACCOUNT_NAME from ``azd env get-values``
2. Look up ``skipVnet`` in ``.azure/<env>/config.json``
3. If VNet is enabled, fetch the public IP and call
   ``az storage account network-rule add``

Usage::

    python -m src.deploy.add_client_ip
    python -m src.deploy.add_client_ip --config-root .azure --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import ipaddress
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import Any

import aiohttp

from src.function_agent.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_IP_SERVICE_URL = "https://api.ipify.org"
DEFAULT_CONFIG_ROOT = ".azure"
REQUIRED_ENV_KEYS = ("RESOURCE_GROUP", "STORAGE_ACCOUNT_NAME")


def parse_env_values(output: str) -> dict[str, str]:
    """Parse ``KEY="value"`` lines as printed by ``azd env get-values``."""
    values: dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"')
    return values


def read_azd_env() -> dict[str, str]:
    """Return the current azd environment values."""
    completed = subprocess.run(
        ["azd", "env", "get-values"],
        check=True,
        capture_output=True,
        text=True,
    )
    values = parse_env_values(completed.stdout)
    missing = [key for key in REQUIRED_ENV_KEYS if not values.get(key)]
    if missing:
        raise ConfigurationError(f"azd environment is missing: {', '.join(missing)}")
    return values


def config_path_for(resource_group: str, config_root: str | Path = DEFAULT_CONFIG_ROOT) -> Path:
    """Map ``rg-<env>`` to ``<config_root>/<env>/config.json``.

    Only the first hyphen-delimited segment is dropped; a name without a
    hyphen is used as is.
    """
    _, sep, rest = resource_group.partition("-")
    env_name = rest if sep else resource_group
    return Path(config_root) / env_name / "config.json"


def _find_key(document: Any, key: str) -> Any:
    if isinstance(document, dict):
        if key in document:
            return document[key]
        for value in document.values():
            found = _find_key(value, key)
            if found is not None:
                return found
    elif isinstance(document, list):
        for item in document:
            found = _find_key(item, key)
            if found is not None:
                return found
    return None


def is_vnet_skipped(config_file: Path) -> bool:
    """Return True when ``skipVnet`` in ``config_file`` is set to true.

    A missing file or key means VNet is enabled.
    """
    if not config_file.is_file():
        logger.warning("Config file %s not found. Assuming VNet is enabled.", config_file)
        return False

    document = json.loads(config_file.read_text(encoding="utf-8"))
    skip_vnet = _find_key(document, "skipVnet")
    if skip_vnet is None:
        logger.warning("skipVnet not set in %s. Assuming VNet is enabled.", config_file)
        return False
    return "true" in str(skip_vnet).lower()


async def fetch_client_ip(url: str = DEFAULT_IP_SERVICE_URL, timeout_s: float = 10.0) -> str:
    """Ask a what-is-my-IP service for this machine's public address."""
    timeout = aiohttp.ClientTimeout(total=timeout_s)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.get(url) as resp:
            resp.raise_for_status()
            text = (await resp.text()).strip()
    try:
        return str(ipaddress.ip_address(text))
    except ValueError as exc:
        raise ValueError(f"{url} did not return an IP address: {text!r}") from exc


def add_network_rule(resource_group: str, account_name: str, ip_address: str) -> None:
    """Allow ``ip_address`` on the storage account firewall."""
    subprocess.run(
        [
            "az", "storage", "account", "network-rule", "add",
            "--resource-group", resource_group,
            "--account-name", account_name,
            "--ip-address", ip_address,
        ],
        check=True,
        stdout=subprocess.DEVNULL,
    )
    logger.info("Added %s to the network rules of %s", ip_address, account_name)


def add_client_ip(config_root: str | Path, ip_service_url: str) -> bool:
    """Run the bootstrap. Returns True when a network rule was added."""
    env = read_azd_env()
    resource_group = env["RESOURCE_GROUP"]
    account_name = env["STORAGE_ACCOUNT_NAME"]

    if is_vnet_skipped(config_path_for(resource_group, config_root)):
        logger.info(
            "VNet is not enabled. Skipping adding the client IP to the network rule "
            "of the Azure Functions storage account"
        )
        return False

    logger.info(
        "VNet is enabled. Adding the client IP to the network rule "
        "of the Azure Functions storage account"
    )
    client_ip = asyncio.run(fetch_client_ip(ip_service_url))
    add_network_rule(resource_group, account_name, client_ip)
    return True


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Add the client IP to the Azure Functions storage account network rules",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config-root",
        help="Folder holding the azd environment folders",
        default=DEFAULT_CONFIG_ROOT,
    )
    parser.add_argument(
        "--ip-service-url",
        help="Service returning the caller's public IP as plain text",
        default=DEFAULT_IP_SERVICE_URL,
    )
    parser.add_argument("--verbose", help="Enable verbose logging", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        add_client_ip(args.config_root, args.ip_service_url)
    except subprocess.CalledProcessError as exc:
        logger.error("Command failed (exit %s): %s", exc.returncode, " ".join(exc.cmd))
        return 1
    except (ConfigurationError, aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as exc:
        logger.error("Adding the client IP failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
