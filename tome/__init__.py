"""Module definitions and store, a BM25 full-text index, and wiki SQL dump parsers."""

__version__ = "0.1.0"

__all__ = [
    "core",
    "spec",
    "resolver",
    "store",
    "schema",
    "index",
    "sqldump",
    "category_ingest",
    "geotag_ingest",
    "redirect_ingest",
]