"""
Pentest tools catalogue: dataset loading, filtering/sorting, GitHub enrichment.
"""

from .catalogue import Catalogue, filter_and_sort
from .loader import DatasetLoader
from .models import Category, FilterOptions, SortOption, Tool
from .stars import StarsClient

__all__ = [
    "Catalogue",
    "Category",
    "DatasetLoader",
    "FilterOptions",
    "SortOption",
    "StarsClient",
    "Tool",
    "filter_and_sort",
]
