"""Bundled provider catalogue and its loader."""

from treasury_aggregator.data.loader import (
    CATALOGUE_ENV_VAR,
    DEFAULT_CATALOGUE,
    catalogue_path,
    get_provider_names,
    get_rpc_endpoints,
    load_catalogue,
)

__all__ = [
    "CATALOGUE_ENV_VAR",
    "DEFAULT_CATALOGUE",
    "catalogue_path",
    "get_provider_names",
    "get_rpc_endpoints",
    "load_catalogue",
]
