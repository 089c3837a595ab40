"""
Datathon Data Utilities
=======================

Loading, reshaping and hierarchy utilities for the pharma sales spreadsheet.

Modules:
- load: Core loading functions (read_raw, load_datathon)
- reshape: Wide spreadsheet -> long -> panel (reshape_long, pivot_functions)
- hierarchy: cluster > country > brand (create_unique_id, aggregate_hierarchy, stack_levels)
- subset: Subset creation (create_subset)
"""

from .constants import HIERARCHY_COLS, LEVEL_KEYS, ID_SEPARATOR

from .load import (
    read_raw,
    load_datathon,
)

from .reshape import (
    parse_month,
    clean_column_names,
    clean_values,
    reshape_long,
    pivot_functions,
    fill_missing_months,
)

from .hierarchy import (
    create_unique_id,
    expand_hierarchy,
    level_of,
    aggregate_hierarchy,
    stack_levels,
)

from .subset import create_subset

__all__ = [
    # Constants
    'HIERARCHY_COLS',
    'LEVEL_KEYS',
    'ID_SEPARATOR',
    # Loading
    'read_raw',
    'load_datathon',
    # Reshaping
    'parse_month',
    'clean_column_names',
    'clean_values',
    'reshape_long',
    'pivot_functions',
    'fill_missing_months',
    # Hierarchy
    'create_unique_id',
    'expand_hierarchy',
    'level_of',
    'aggregate_hierarchy',
    'stack_levels',
    # Subset
    'create_subset',
]
