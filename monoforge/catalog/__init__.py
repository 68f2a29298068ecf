"""Template catalog -- the static registry of template bundles.

Quick usage::

    from monoforge.catalog import default_catalog

    catalog = default_catalog()
    bundle = catalog.get("framework", "react")
"""

from monoforge.catalog.bundles import (
    CATEGORY_PRIORITY,
    ConfigCategory,
    ConfigEntry,
    TemplateBundle,
    TemplateFile,
)
from monoforge.catalog.catalog import TemplateCatalog, default_catalog
from monoforge.catalog.templates import TemplateRenderer

__all__ = [
    "CATEGORY_PRIORITY",
    "ConfigCategory",
    "ConfigEntry",
    "TemplateBundle",
    "TemplateCatalog",
    "TemplateFile",
    "TemplateRenderer",
    "default_catalog",
]
