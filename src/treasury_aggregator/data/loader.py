"""Provider catalogue loader."""

import os
from pathlib import Path
from typing import Any

import yaml

CATALOGUE_ENV_VAR = "TREASURY_PROVIDERS_FILE"
DEFAULT_CATALOGUE = Path(__file__).parent / "providers.yaml"


def catalogue_path() -> Path:
    """
    Resolve the provider catalogue location.

    Returns
    -------
    Path
        Path from ``TREASURY_PROVIDERS_FILE`` when set, else the bundled providers.yaml

    """
    env_value = os.environ.get(CATALOGUE_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_CATALOGUE


def load_catalogue(path: str | Path | None = None) -> dict[str, Any]:
    """
    Load the provider catalogue from YAML.

    Parameters
    ----------
    path : str | Path | None
        Catalogue file. Uses :func:`catalogue_path` if None.

    Returns
    -------
    dict[str, Any]
        Raw catalogue including providers, RPC endpoints, retry schedules and rate limits

    Raises
    ------
    FileNotFoundError
        If the catalogue file does not exist

    """
    path = Path(path) if path is not None else catalogue_path()
    if not path.exists():
        msg = f"Provider catalogue not found: {path}"
        raise FileNotFoundError(msg)
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_provider_names(path: str | Path | None = None) -> list[str]:
    """
    Get names of all configured upstream providers.

    Parameters
    ----------
    path : str | Path | None
        Catalogue file

    Returns
    -------
    list[str]
        Provider names

    """
    return list(load_catalogue(path).get("providers", {}).keys())


def get_rpc_endpoints(path: str | Path | None = None) -> list[str]:
    """
    Get the configured Base JSON-RPC endpoints in rotation order.

    Parameters
    ----------
    path : str | Path | None
        Catalogue file

    Returns
    -------
    list[str]
        RPC endpoint URLs

    """
    return list(load_catalogue(path).get("rpc", {}).get("endpoints", []))
