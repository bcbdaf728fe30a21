"""Mirror new and updated PGXN releases into the Trunk registry.

Each run fetches PGXN's recent releases and crawls the registry's
``contrib/*/Trunk.toml`` files, then opens one pull request per release the
registry does not already cover. See :mod:`pgxn_bridge.sync` for the
pipeline and :mod:`pgxn_bridge.cli` for the entry point.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
