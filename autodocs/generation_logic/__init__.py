"""Generation logic package.

This package groups the helpers that orchestrate multi-document generation
(the sequential orchestrator, the NDJSON progress stream and the bundle
download). Keeping them here allows `autodocs/api/routes.py` to stay minimal and
focused on HTTP routing while core business logic lives in composable modules.
"""

from .bundle_download import _stream_bundle  # noqa: F401
from .orchestrator import GenerationOrchestrator  # noqa: F401
from .orchestrator import SessionRegistry  # noqa: F401
from .orchestrator import session_registry  # noqa: F401
from .stream_orchestrator import _stream_session_events  # noqa: F401
