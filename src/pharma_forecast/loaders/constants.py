"""
Shared constants for datathon data loading utilities.
"""

# Hierarchy columns in order (from least specific to most)
HIERARCHY_COLS = ['cluster', 'country', 'brand']

# Raw spreadsheet identifier columns (after clean_column_names)
RAW_ID_COLS = HIERARCHY_COLS + ['function']

# Aggregation levels and the keys that define them
LEVEL_KEYS = {
    'total': [],
    'cluster': ['cluster'],
    'country': ['cluster', 'country'],
    'brand': ['cluster', 'country', 'brand'],
}

# Cell values treated as missing in the raw spreadsheet
NA_TOKENS = {'', '-', '--', 'n/a', 'na', 'nan', 'none', 'null', '#n/a'}

# Separator used to build unique_id from hierarchy columns
ID_SEPARATOR = '|'

__all__ = ['HIERARCHY_COLS', 'RAW_ID_COLS', 'LEVEL_KEYS', 'NA_TOKENS', 'ID_SEPARATOR']
