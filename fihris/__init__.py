"""
Fihris - academic research outline assistant.

Requests a generated research outline, scores its quality, and manages
editing, regeneration and export of the outline.
"""

__version__ = "1.0.0"

from fihris.config import FihrisConfig, load_config
from fihris.lifecycle import IndexController, LifecycleState
from fihris.outline import IndexDocument
from fihris.quality import score_outline

__all__ = ['FihrisConfig', 'load_config', 'IndexController', 'LifecycleState',
           'IndexDocument', 'score_outline']
