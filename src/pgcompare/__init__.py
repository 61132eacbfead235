"""Schema comparison for PostgreSQL catalogs."""

from pgcompare.catalog import Catalog, catalog_from_json, catalog_to_json
from pgcompare.comparator import Comparator, compare_catalogs
from pgcompare.config import CompareOptions, load_options
from pgcompare.errors import ConfigError, DataSourceError, DuplicateKeyError
from pgcompare.export import report_to_html, report_to_json
from pgcompare.render import count_differences, render_text
from pgcompare.source import open_catalog, read_catalog

__all__ = [
    "Catalog",
    "Comparator",
    "CompareOptions",
    "ConfigError",
    "DataSourceError",
    "DuplicateKeyError",
    "catalog_from_json",
    "catalog_to_json",
    "compare_catalogs",
    "count_differences",
    "load_options",
    "open_catalog",
    "read_catalog",
    "render_text",
    "report_to_html",
    "report_to_json",
]
