"""
livingdocs: AI-generated living documentation.

Generates repository documentation, keeps an append-only version history,
searches it, turns significant edits into business specs and announces
changes to collaborators in realtime.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config import Config
from .documentation import DocumentationGenerator
from .service import DocsWorkspace

__all__ = ["Config", "DocumentationGenerator", "DocsWorkspace", "__version__"]
