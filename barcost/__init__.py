"""barcost - recipe costing and batch-scaling engine for cocktail menus."""

from barcost.utils.constants import APP_VERSION

__version__ = APP_VERSION
