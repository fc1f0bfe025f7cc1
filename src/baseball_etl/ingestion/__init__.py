"""Source discovery: archive extraction and ETL job configuration."""

from .archive import extract_member, find_member, staging_directory
from .config import EtlConfig, load_etl_config

__all__ = [
    "EtlConfig",
    "extract_member",
    "find_member",
    "load_etl_config",
    "staging_directory",
]
