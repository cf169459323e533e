"""Paginated photo gallery client: catalog paging, image fetching and a two-tier byte cache."""

__version__ = "0.1.0"
