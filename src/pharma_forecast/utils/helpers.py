"""
Helper Utilities
================

Where am I running from? Project-root discovery plus notebook detection,
used to default cache keys, module tags and output folders.
"""

import os
import re
from pathlib import Path
from typing import Optional, Tuple

PROJECT_MARKERS = ('.git', 'pyproject.toml', 'config')

# "03_ensemble_weights" -> "03", "2.1_eda" -> "2.1"
_STEP_PATTERN = re.compile(r'^(\d+(?:[._]\d+)?)')


def find_project_root(
    marker_files: Tuple[str, ...] = PROJECT_MARKERS,
    start: Optional[Path] = None
) -> Path:
    """
    Nearest directory at or above ``start`` holding one of ``marker_files``.

    Returns ``start`` itself (default: the working directory) when no
    marker is found, so a bare folder with a spreadsheet still works.
    """
    here = Path(start or Path.cwd()).resolve()
    return next(
        (d for d in (here, *here.parents) if any((d / m).exists() for m in marker_files)),
        here,
    )


def get_notebook_path() -> Optional[Path]:
    """
    Path of the running notebook, or None outside one.

    VS Code exposes ``__vsc_ipynb_file__`` in the kernel namespace and
    JupyterLab sets ``JPY_SESSION_NAME`` in the kernel environment.
    """
    try:
        from IPython import get_ipython
    except ImportError:
        return None

    shell = get_ipython()
    if shell is None:
        return None

    vsc_file = getattr(shell, 'user_ns', {}).get('__vsc_ipynb_file__')
    if vsc_file:
        return Path(vsc_file)

    session = os.environ.get('JPY_SESSION_NAME')
    if session and session.endswith('.ipynb'):
        return Path(session)
    return None


def get_notebook_name() -> Optional[str]:
    """Notebook file name without .ipynb, or None."""
    path = get_notebook_path()
    return path.stem if path else None


def get_module_from_notebook() -> Optional[str]:
    """
    Step prefix of the notebook name, used to tag cache entries.

    Examples
    --------
    >>> # In notebook "03_ensemble_weights.ipynb"
    >>> get_module_from_notebook()
    '03'
    """
    match = _STEP_PATTERN.match(get_notebook_name() or '')
    return match.group(1) if match else None


def get_artifact_subfolder() -> Optional[str]:
    """
    Output subfolder for the running notebook: its directory name with
    any 'notebooks_' prefix removed (notebooks_eda/ -> 'eda').
    """
    path = get_notebook_path()
    if path is None:
        return None
    folder = path.parent.name
    return folder[len('notebooks_'):] if folder.startswith('notebooks_') else folder


__all__ = [
    'find_project_root',
    'get_notebook_name',
    'get_notebook_path',
    'get_module_from_notebook',
    'get_artifact_subfolder',
]
