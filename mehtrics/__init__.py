"""mehtrics: sync core for the meh-trics tracker.

Two mechanisms live here:

- an in-process event bus for domain events
- an offline mutation queue that buffers writes until the remote API is reachable

Everything else (CLI, status API) is a thin shell around those two.
"""

from __future__ import annotations

__all__ = ["__version__", "SCHEMA_VERSION"]

__version__ = "1.0.0"

# Event envelope schema version. Bumped only when payload shapes change incompatibly.
SCHEMA_VERSION = "1.0.0"
