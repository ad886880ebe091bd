"""Validators for RPC arguments and endpoint configuration."""

from nodepool.validators.height_validator import validate_height
from nodepool.validators.url_validator import is_valid_endpoint_url, validate_endpoint_url

__all__ = ["is_valid_endpoint_url", "validate_endpoint_url", "validate_height"]
