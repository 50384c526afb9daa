"""Reference authentication sources.

Importing this package registers the built-in source types with
``default_registry``:

- ``static``: `StaticSource`, fixed attributes, completes synchronously
- ``external``: `ExternalRedirectSource`, suspends behind an external login page
"""

from .external import ExternalRedirectSource
from .static import StaticSource

__all__ = ["ExternalRedirectSource", "StaticSource"]
