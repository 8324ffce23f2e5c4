"""handlers/__init__.py — re-export handler functions for convenience."""
from .completion import get_completion_items, get_completions
from .contextinfo import get_context_info
from .diagnostics import get_diagnostics
from .hover import get_hover
from .symbols import get_document_symbols

__all__ = [
    'get_completion_items',
    'get_completions',
    'get_context_info',
    'get_diagnostics',
    'get_document_symbols',
    'get_hover',
]
